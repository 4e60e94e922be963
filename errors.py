"""
Error types raised by the ledger store
"""
from __future__ import annotations


class LedgerError(Exception):
    """Base class for rejected ledger operations; message is user-facing"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """Malformed input: empty name, non-positive amount, no participants"""


class NotFoundError(LedgerError):
    """Operation targets an id that is not in the store"""


class ConflictError(LedgerError):
    """Operation blocked by a domain rule, e.g. removing a payer"""


class InvariantViolation(LedgerError):
    """Operation would break a structural guarantee, e.g. no groups left"""
