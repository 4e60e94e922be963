"""
Data models for GroupSplitLedger
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from utils import now


class PersonStatus(Enum):
    """Lifecycle state of a group member"""
    ACTIVE = "active"
    DELETED = "deleted"


@dataclass(frozen=True)
class Person:
    """Group member; soft-deleted members stay in the group for history"""
    id: str
    name: str
    avatar: Optional[str] = None
    status: PersonStatus = PersonStatus.ACTIVE
    created_at: datetime = field(default_factory=now)

    @property
    def is_active(self) -> bool:
        return self.status is PersonStatus.ACTIVE

    @property
    def is_deleted(self) -> bool:
        return self.status is PersonStatus.DELETED


@dataclass(frozen=True)
class Expense:
    """Single expense, split equally among its participants"""
    id: str
    title: str
    amount: float
    payer_id: str
    participants: Tuple[str, ...]  # person ids
    description: Optional[str] = None
    category: Optional[str] = None
    created_at: datetime = field(default_factory=now)


@dataclass(frozen=True)
class Group:
    """A self-contained ledger of people and shared expenses"""
    id: str
    name: str
    description: Optional[str] = None
    members: Tuple[Person, ...] = ()
    expenses: Tuple[Expense, ...] = ()
    created_at: datetime = field(default_factory=now)
    updated_at: datetime = field(default_factory=now)

    def find_member(self, person_id: str) -> Optional[Person]:
        return next((p for p in self.members if p.id == person_id), None)

    def find_expense(self, expense_id: str) -> Optional[Expense]:
        return next((e for e in self.expenses if e.id == expense_id), None)

    def active_members(self) -> Tuple[Person, ...]:
        return tuple(p for p in self.members if p.is_active)

    def has_payment_history(self, person_id: str) -> bool:
        """True if the person paid for at least one expense in this group"""
        return any(e.payer_id == person_id for e in self.expenses)


@dataclass(frozen=True)
class PersonBalance:
    """Net position of one person; positive -> should receive"""
    person_id: str
    total_paid: float
    total_share: float

    @property
    def balance(self) -> float:
        return self.total_paid - self.total_share


@dataclass(frozen=True)
class Transfer:
    """One recommended payment from a debtor to a creditor"""
    from_person_id: str
    to_person_id: str
    amount: float


@dataclass(frozen=True)
class Settlement:
    """Balances plus the transfer plan that settles them"""
    person_balances: Tuple[PersonBalance, ...]
    optimal_transfers: Tuple[Transfer, ...]


@dataclass(frozen=True)
class SettlementResult:
    """Settlement of one group, stamped with totals and calculation time"""
    group_id: str
    person_balances: Tuple[PersonBalance, ...]
    optimal_transfers: Tuple[Transfer, ...]
    total_amount: float
    calculated_at: datetime = field(default_factory=now)
