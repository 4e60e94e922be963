"""
Ledger store: the owned collection of groups and every mutation on it.

Entities are frozen, so each mutation builds new Group snapshots and swaps
them in only after validation passed. A rejected operation raises one of
the errors in errors.py and leaves the store, and the persisted data,
untouched. A successful one is saved through the storage backend.
"""
from __future__ import annotations
import logging
import math
from dataclasses import replace
from typing import Iterable, Optional, Sequence, Tuple

from computations import settle_group
from config import StorageBackend
from errors import ConflictError, InvariantViolation, LedgerError, NotFoundError, ValidationError
from models import Expense, Group, Person, PersonStatus, SettlementResult
from utils import generate_id, now

logger = logging.getLogger(__name__)


def _reject(error: LedgerError) -> LedgerError:
    logger.warning("Rejected: %s", error.message)
    return error


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _require_name(name: Optional[str], what: str) -> str:
    cleaned = _clean_text(name)
    if not cleaned:
        raise _reject(ValidationError(f"{what} name must not be empty"))
    return cleaned


class LedgerStore:
    """In-memory groups plus the active group, persisted after each mutation"""

    def __init__(self, storage: StorageBackend):
        self.storage = storage
        self._groups: Tuple[Group, ...] = ()
        self._active_id: Optional[str] = None

    @classmethod
    def open(cls, storage: StorageBackend) -> "LedgerStore":
        """Create a store and load its state from storage"""
        store = cls(storage)
        store.load()
        return store

    def load(self) -> None:
        self._groups = tuple(self.storage.load_groups())
        active_id = self.storage.load_active_group_id()
        self._active_id = active_id if self.get_group(active_id) else None
        logger.info("Loaded %d group(s), active=%s", len(self._groups), self._active_id)

    def clear_all(self) -> None:
        """Erase persisted data and reset to an empty store"""
        self.storage.clear_all()
        self._groups = ()
        self._active_id = None
        logger.info("Cleared all data")

    # ---------- Read access ----------
    @property
    def groups(self) -> Tuple[Group, ...]:
        return self._groups

    @property
    def active_group_id(self) -> Optional[str]:
        return self._active_id

    @property
    def active_group(self) -> Optional[Group]:
        return self.get_group(self._active_id)

    def get_group(self, group_id: Optional[str]) -> Optional[Group]:
        if group_id is None:
            return None
        return next((g for g in self._groups if g.id == group_id), None)

    def settlement(self) -> Optional[SettlementResult]:
        """Settlement of the active group; None if there is nothing to settle"""
        group = self.active_group
        if group is None:
            return None
        return settle_group(group)

    # ---------- Internals ----------
    def _commit(self, groups: Iterable[Group], active_id: Optional[str]) -> None:
        self._groups = tuple(groups)
        self._active_id = active_id
        self.storage.save_groups(self._groups)
        if active_id is not None:
            self.storage.save_active_group_id(active_id)

    def _replace_group(self, updated: Group) -> Group:
        self._commit((updated if g.id == updated.id else g for g in self._groups), self._active_id)
        return updated

    def _require_active_group(self) -> Group:
        group = self.active_group
        if group is None:
            raise _reject(NotFoundError("No active group"))
        return group

    def _validate_expense(
        self,
        group: Group,
        title: str,
        amount: float,
        payer_id: str,
        participants: Sequence[str],
    ) -> Tuple[str, float, Tuple[str, ...]]:
        title = _clean_text(title)
        if not title:
            raise _reject(ValidationError("Expense title must not be empty"))
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise _reject(ValidationError("Amount must be a number"))
        amount = float(amount)
        if not math.isfinite(amount) or amount <= 0:
            raise _reject(ValidationError("Amount must be greater than zero"))
        payer = group.find_member(payer_id)
        if payer is None or not payer.is_active:
            raise _reject(ValidationError("Payer must be an active member of the group"))
        # drop duplicates, keep order
        ids = tuple(dict.fromkeys(participants or ()))
        if not ids:
            raise _reject(ValidationError("Select at least one participant"))
        unknown = [pid for pid in ids if group.find_member(pid) is None]
        if unknown:
            raise _reject(ValidationError(f"Unknown participant(s): {', '.join(unknown)}"))
        return title, amount, ids

    # ---------- Groups ----------
    def create_group(self, name: str, description: Optional[str] = None) -> Group:
        """Create an empty group and make it the active one"""
        name = _require_name(name, "Group")
        ts = now()
        group = Group(
            id=generate_id(),
            name=name,
            description=_clean_text(description),
            created_at=ts,
            updated_at=ts,
        )
        self._commit(self._groups + (group,), group.id)
        logger.info("Created group %s (%s)", group.id, group.name)
        return group

    def update_group(self, group_id: str, name: str, description: Optional[str] = None) -> Group:
        group = self.get_group(group_id)
        if group is None:
            raise _reject(NotFoundError(f"Group {group_id} not found"))
        name = _require_name(name, "Group")
        updated = replace(group, name=name, description=_clean_text(description), updated_at=now())
        logger.info("Updated group %s", group_id)
        return self._replace_group(updated)

    def remove_group(self, group_id: str) -> Group:
        """
        Delete a group with all its members and expenses. The last group can't
        be removed; removing the active group activates the first remaining one.
        """
        if len(self._groups) <= 1:
            raise _reject(InvariantViolation("At least one group must remain"))
        group = self.get_group(group_id)
        if group is None:
            raise _reject(NotFoundError(f"Group {group_id} not found"))
        remaining = tuple(g for g in self._groups if g.id != group_id)
        active_id = self._active_id
        if active_id == group_id:
            active_id = remaining[0].id if remaining else None
        self._commit(remaining, active_id)
        logger.info("Removed group %s", group_id)
        return group

    def switch_group(self, group_id: str) -> Optional[Group]:
        """Activate a group; an unknown id leaves the state unchanged"""
        group = self.get_group(group_id)
        if group is None:
            logger.warning("Cannot switch to unknown group %s", group_id)
            return None
        self._active_id = group.id
        self.storage.save_active_group_id(group.id)
        return group

    # ---------- People ----------
    def add_person(self, name: str, avatar: Optional[str] = None) -> Person:
        group = self._require_active_group()
        name = _require_name(name, "Person")
        if any(p.name == name for p in group.active_members()):
            raise _reject(ValidationError(f"A member named '{name}' already exists"))
        person = Person(id=generate_id(), name=name, avatar=_clean_text(avatar), created_at=now())
        self._replace_group(replace(group, members=group.members + (person,), updated_at=now()))
        logger.info("Added person %s (%s) to group %s", person.id, name, group.id)
        return person

    def remove_person(self, person_id: str) -> Person:
        """
        Soft-delete a member. Members who paid for any expense are kept
        active so that their payments stay attributable.
        """
        group = self._require_active_group()
        person = group.find_member(person_id)
        if person is None:
            raise _reject(NotFoundError(f"Person {person_id} not found"))
        if group.has_payment_history(person_id):
            raise _reject(ConflictError(f"'{person.name}' has payment history and can't be removed"))
        if person.is_deleted:
            return person
        deleted = replace(person, status=PersonStatus.DELETED)
        members = tuple(deleted if p.id == person_id else p for p in group.members)
        self._replace_group(replace(group, members=members, updated_at=now()))
        logger.info("Soft-deleted person %s in group %s", person_id, group.id)
        return deleted

    # ---------- Expenses ----------
    def add_expense(
        self,
        title: str,
        amount: float,
        payer_id: str,
        participants: Sequence[str],
        description: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Expense:
        group = self._require_active_group()
        title, amount, ids = self._validate_expense(group, title, amount, payer_id, participants)
        expense = Expense(
            id=generate_id(),
            title=title,
            amount=amount,
            payer_id=payer_id,
            participants=ids,
            description=_clean_text(description),
            category=_clean_text(category),
            created_at=now(),
        )
        self._replace_group(replace(group, expenses=group.expenses + (expense,), updated_at=now()))
        logger.info("Added expense %s (%.2f) to group %s", expense.id, amount, group.id)
        return expense

    def add_expenses(self, drafts: Iterable) -> Tuple[Expense, ...]:
        """
        Add several expenses in one commit. Each draft carries the add_expense
        fields as attributes (see csv_handler.ExpenseDraft). If any draft is
        rejected nothing is added and nothing is saved.
        """
        group = self._require_active_group()
        added = []
        for d in drafts:
            title, amount, ids = self._validate_expense(group, d.title, d.amount, d.payer_id, d.participants)
            added.append(Expense(
                id=generate_id(),
                title=title,
                amount=amount,
                payer_id=d.payer_id,
                participants=ids,
                description=_clean_text(d.description),
                category=_clean_text(d.category),
                created_at=now(),
            ))
        if not added:
            return ()
        self._replace_group(replace(group, expenses=group.expenses + tuple(added), updated_at=now()))
        logger.info("Added %d expense(s) to group %s", len(added), group.id)
        return tuple(added)

    def update_expense(
        self,
        expense_id: str,
        title: str,
        amount: float,
        payer_id: str,
        participants: Sequence[str],
        description: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Expense:
        """Replace every mutable field of an expense; id and created_at are kept"""
        group = self._require_active_group()
        expense = group.find_expense(expense_id)
        if expense is None:
            raise _reject(NotFoundError(f"Expense {expense_id} not found"))
        title, amount, ids = self._validate_expense(group, title, amount, payer_id, participants)
        updated = replace(
            expense,
            title=title,
            amount=amount,
            payer_id=payer_id,
            participants=ids,
            description=_clean_text(description),
            category=_clean_text(category),
        )
        expenses = tuple(updated if e.id == expense_id else e for e in group.expenses)
        self._replace_group(replace(group, expenses=expenses, updated_at=now()))
        logger.info("Updated expense %s in group %s", expense_id, group.id)
        return updated

    def remove_expense(self, expense_id: str) -> Optional[Expense]:
        """Remove an expense; returns it, or None if it wasn't there"""
        group = self._require_active_group()
        expense = group.find_expense(expense_id)
        if expense is None:
            return None
        expenses = tuple(e for e in group.expenses if e.id != expense_id)
        self._replace_group(replace(group, expenses=expenses, updated_at=now()))
        logger.info("Removed expense %s from group %s", expense_id, group.id)
        return expense
