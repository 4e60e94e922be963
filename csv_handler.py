"""
CSV export and import functionality for GroupSplitLedger
"""
from __future__ import annotations
import csv
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from errors import ValidationError
from models import Group
from utils import safe_float

COLUMNS = ['id', 'created_at', 'title', 'amount', 'payer', 'participants', 'category', 'description']


@dataclass(frozen=True)
class ExpenseDraft:
    """Expense read from CSV, ready for LedgerStore.add_expenses"""
    title: str
    amount: float
    payer_id: str
    participants: Tuple[str, ...]
    description: Optional[str] = None
    category: Optional[str] = None


def _person_name(group: Group, person_id: str) -> str:
    p = group.find_member(person_id)
    return p.name if p else person_id


def export_expenses_to_csv(group: Group, filepath: str) -> None:
    """
    Export a group's expenses to CSV file.
    Payer and participants are written by name, participants joined with ';'
    """
    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(COLUMNS)
        for e in group.expenses:
            writer.writerow([
                e.id,
                e.created_at.isoformat(),
                e.title,
                f"{e.amount:.2f}",
                _person_name(group, e.payer_id),
                ';'.join(_person_name(group, pid) for pid in e.participants),
                e.category or '',
                e.description or '',
            ])


def import_expenses_from_csv(filepath: str, group: Group) -> List[ExpenseDraft]:
    """
    Import expenses from CSV file, resolving names against the group's active
    members. Raises ValidationError naming the first bad row, so a file
    is either read completely or not at all.
    """
    by_name: Dict[str, str] = {p.name: p.id for p in group.active_members()}

    def resolve(name: str, line: int) -> str:
        pid = by_name.get(name.strip())
        if pid is None:
            raise ValidationError(f"Row {line}: unknown member '{name.strip()}'")
        return pid

    drafts = []
    with open(filepath, 'r', newline='', encoding='utf-8') as f:
        reader = csv.DictReader(f)
        # header is line 1
        for line, row in enumerate(reader, start=2):
            title = (row.get('title') or '').strip()
            if not title:
                raise ValidationError(f"Row {line}: title must not be empty")
            amount = safe_float(row.get('amount'), None)
            if amount is None or amount <= 0:
                raise ValidationError(f"Row {line}: invalid amount '{row.get('amount')}'")
            names = [n for n in (row.get('participants') or '').split(';') if n.strip()]
            if not names:
                raise ValidationError(f"Row {line}: no participants")
            drafts.append(ExpenseDraft(
                title=title,
                amount=amount,
                payer_id=resolve(row.get('payer') or '', line),
                participants=tuple(resolve(n, line) for n in names),
                description=(row.get('description') or '').strip() or None,
                category=(row.get('category') or '').strip() or None,
            ))

    return drafts
