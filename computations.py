"""
Business logic and computations for GroupSplitLedger
"""
from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from models import Expense, Group, Person, PersonBalance, Settlement, SettlementResult, Transfer
from utils import now

logger = logging.getLogger(__name__)

# two-decimal currency tolerance
EPSILON = 0.01
DEFAULT_CATEGORY = "Other"


def total_amount(expenses: Iterable[Expense]) -> float:
    """Sum of all expense amounts"""
    return sum(float(e.amount) for e in expenses)


def category_totals(expenses: Iterable[Expense]) -> Dict[str, float]:
    """Total spent per category, in first-seen order; blank category -> Other"""
    out: Dict[str, float] = {}
    for e in expenses:
        key = (e.category or "").strip() or DEFAULT_CATEGORY
        out[key] = out.get(key, 0.0) + float(e.amount)
    return out


def compute_settlement(expenses: Sequence[Expense], members: Sequence[Person]) -> Settlement:
    """
    Compute balances for every active member and the transfers settling them.
    Each expense is split equally among its participants who are still active;
    an expense with no active participant is skipped entirely.
    """
    active_ids = [p.id for p in members if p.is_active]
    active = set(active_ids)
    paid = {pid: 0.0 for pid in active_ids}
    share = {pid: 0.0 for pid in active_ids}

    for e in expenses:
        participants = [pid for pid in e.participants if pid in active]
        if not participants:
            continue
        per_person = float(e.amount) / len(participants)
        if e.payer_id in active:
            paid[e.payer_id] += float(e.amount)
        else:
            # unreachable through LedgerStore.remove_person
            logger.warning("Expense %s paid by inactive person %s; payment ignored", e.id, e.payer_id)
        for pid in participants:
            share[pid] += per_person

    balances = tuple(PersonBalance(pid, paid[pid], share[pid]) for pid in active_ids)
    return Settlement(person_balances=balances, optimal_transfers=tuple(minimize_transfers(balances)))


def minimize_transfers(balances: Iterable[PersonBalance], eps: float = EPSILON) -> List[Transfer]:
    """
    Greedy settlement: the largest debtor pays the largest creditor until one
    side is exhausted. net>0 creditor; net<0 debtor.
    Uses at most len(creditors) + len(debtors) - 1 transfers.
    """
    creditors = [(b.person_id, b.balance) for b in balances if b.balance > eps]
    debtors = [(b.person_id, b.balance) for b in balances if b.balance < -eps]
    creditors.sort(key=lambda x: x[1], reverse=True)
    debtors.sort(key=lambda x: x[1])

    transfers = []
    i = j = 0
    while i < len(creditors) and j < len(debtors):
        cname, camt = creditors[i]
        dname, damt = debtors[j]
        x = min(camt, -damt)
        if x > eps:
            transfers.append(Transfer(from_person_id=dname, to_person_id=cname, amount=round(x, 2)))
        # running balances stay unrounded
        camt -= x
        damt += x
        if abs(camt) < eps:
            i += 1
        else:
            creditors[i] = (cname, camt)
        if abs(damt) < eps:
            j += 1
        else:
            debtors[j] = (dname, damt)

    return transfers


def apply_transfers(balances: Iterable[PersonBalance], transfers: Iterable[Transfer]) -> Dict[str, float]:
    """Net balance left per person after every transfer is paid"""
    out = {b.person_id: b.balance for b in balances}
    for t in transfers:
        out[t.from_person_id] = out.get(t.from_person_id, 0.0) + t.amount
        out[t.to_person_id] = out.get(t.to_person_id, 0.0) - t.amount
    return out


def settle_group(group: Group) -> Optional[SettlementResult]:
    """Settlement of a group, or None when it has no expenses to settle"""
    if not group.expenses:
        return None
    settlement = compute_settlement(group.expenses, group.members)
    return SettlementResult(
        group_id=group.id,
        person_balances=settlement.person_balances,
        optimal_transfers=settlement.optimal_transfers,
        total_amount=total_amount(group.expenses),
        calculated_at=now(),
    )
