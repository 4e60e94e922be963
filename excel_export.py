"""
Excel export functionality for GroupSplitLedger
"""
from __future__ import annotations

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from computations import category_totals, compute_settlement, total_amount
from models import Group


HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill("solid", fgColor="4F81BD")
_EDGE = Side(style="thin", color="A0A0A0")
HEADER_BORDER = Border(left=_EDGE, right=_EDGE, top=_EDGE, bottom=_EDGE)


def _autosize_columns(ws, min_width=10, max_width=45):
    """Size each column to its longest value"""
    for col in range(1, ws.max_column + 1):
        letter = get_column_letter(col)
        longest = max((len(str(c.value)) for c in ws[letter] if c.value is not None), default=0)
        ws.column_dimensions[letter].width = max(min_width, min(max_width, longest + 2))


def _money_format(ws, columns, currency):
    fmt = f'"{currency}"#,##0.00'
    for r in range(2, ws.max_row + 1):
        for c in columns:
            ws.cell(r, c).number_format = fmt


def _new_sheet(wb, title, headers):
    """Sheet with a styled header row that stays visible while scrolling"""
    ws = wb.create_sheet(title)
    for col, text in enumerate(headers, start=1):
        cell = ws.cell(1, col, text)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.border = HEADER_BORDER
        cell.alignment = Alignment(horizontal="center", vertical="center")
    ws.freeze_panes = "A2"
    return ws


def display_name(group: Group, person_id: str) -> str:
    """Member name, marked when soft-deleted"""
    p = group.find_member(person_id)
    if p is None:
        return "(unknown)"
    return f"{p.name} (deleted)" if p.is_deleted else p.name


def export_excel(group: Group, filepath: str, currency: str = "¥") -> None:
    """
    Export a group's settlement report to an Excel file with sheets:
    - Expenses
    - Balances (with a TOTAL row)
    - Transfers
    - Categories
    """
    wb = Workbook()
    # remove default sheet
    wb.remove(wb.active)
    settlement = compute_settlement(group.expenses, group.members)

    ws = _new_sheet(wb, "Expenses", ["Date", "Title", "Category", "Amount", "Payer", "Participants", "Description"])
    for e in group.expenses:
        ws.append([
            e.created_at.strftime("%Y-%m-%d %H:%M"),
            e.title,
            e.category or "",
            e.amount,
            display_name(group, e.payer_id),
            ", ".join(display_name(group, pid) for pid in e.participants),
            e.description or "",
        ])
    _money_format(ws, [4], currency)
    _autosize_columns(ws)

    ws = _new_sheet(wb, "Balances", ["Person", "Paid", "Share", "Balance"])
    for b in settlement.person_balances:
        ws.append([display_name(group, b.person_id), b.total_paid, b.total_share, b.balance])
    if settlement.person_balances:
        last = ws.max_row
        ws.append(["TOTAL", f"=SUM(B2:B{last})", f"=SUM(C2:C{last})", f"=SUM(D2:D{last})"])
        ws.cell(ws.max_row, 1).font = Font(bold=True)
    _money_format(ws, [2, 3, 4], currency)
    _autosize_columns(ws)

    ws = _new_sheet(wb, "Transfers", ["From (Debtor)", "To (Creditor)", "Amount"])
    for t in settlement.optimal_transfers:
        ws.append([display_name(group, t.from_person_id), display_name(group, t.to_person_id), t.amount])
    _money_format(ws, [3], currency)
    _autosize_columns(ws)

    ws = _new_sheet(wb, "Categories", ["Category", "Amount"])
    for name, amount in category_totals(group.expenses).items():
        ws.append([name, amount])
    ws.append(["TOTAL", total_amount(group.expenses)])
    ws.cell(ws.max_row, 1).font = Font(bold=True)
    _money_format(ws, [2], currency)
    _autosize_columns(ws)

    wb.save(filepath)
