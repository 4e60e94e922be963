"""
GroupSplitLedger command line
- Keep groups of people and the expenses they share.
- Print who owes whom, export the report to Excel or the expenses to CSV.

Run:
  python split_ledger.py --help

Data lives in $SPLIT_LEDGER_HOME (default ~/.local/share/GroupSplitLedger).
"""
from __future__ import annotations
import argparse
import sys
from typing import List, Optional

from config import JsonFileStorage, configure_logging, load_settings
from csv_handler import export_expenses_to_csv, import_expenses_from_csv
from errors import LedgerError, NotFoundError
from excel_export import display_name, export_excel
from models import Group
from store import LedgerStore
from utils import format_currency


def _member_id(group: Group, name: str) -> str:
    """Resolve an active member by name (or id)"""
    for p in group.active_members():
        if p.name == name or p.id == name:
            return p.id
    raise NotFoundError(f"No active member named '{name}'")


def _group_id(store: LedgerStore, ref: str) -> str:
    for g in store.groups:
        if g.id == ref or g.name == ref:
            return g.id
    raise NotFoundError(f"Group '{ref}' not found")


def _active(store: LedgerStore) -> Group:
    group = store.active_group
    if group is None:
        raise NotFoundError("No active group; create one with create-group")
    return group


def cmd_groups(store, args, settings):
    for g in store.groups:
        mark = "*" if g.id == store.active_group_id else " "
        print(f"{mark} {g.name}  ({len(g.active_members())} people, {len(g.expenses)} expenses)  {g.id}")


def cmd_create_group(store, args, settings):
    g = store.create_group(args.name, args.description)
    print(f"Created group {g.name} ({g.id})")


def cmd_switch(store, args, settings):
    g = store.switch_group(_group_id(store, args.group))
    print(f"Active group: {g.name}")


def cmd_update_group(store, args, settings):
    g = store.update_group(_group_id(store, args.group), args.name, args.description)
    print(f"Updated group {g.name}")


def cmd_remove_group(store, args, settings):
    g = store.remove_group(_group_id(store, args.group))
    print(f"Removed group {g.name}")


def cmd_add_person(store, args, settings):
    p = store.add_person(args.name, args.avatar)
    print(f"Added {p.name} ({p.id})")


def cmd_remove_person(store, args, settings):
    p = store.remove_person(_member_id(_active(store), args.name))
    print(f"Removed {p.name}")


def cmd_add_expense(store, args, settings):
    group = _active(store)
    payer = _member_id(group, args.payer)
    names = args.participants or [p.name for p in group.active_members()]
    e = store.add_expense(
        args.title, args.amount, payer, [_member_id(group, n) for n in names],
        description=args.description, category=args.category,
    )
    print(f"Added expense {e.title} {format_currency(e.amount, settings.currency)} ({e.id})")


def cmd_update_expense(store, args, settings):
    group = _active(store)
    old = group.find_expense(args.expense_id)
    if old is None:
        raise NotFoundError(f"Expense {args.expense_id} not found")
    payer = _member_id(group, args.payer) if args.payer else old.payer_id
    # omitted participants keep the current ones, deleted members included
    if args.participants:
        participants = [_member_id(group, n) for n in args.participants]
    else:
        participants = list(old.participants)
    e = store.update_expense(
        old.id, args.title, args.amount, payer, participants,
        description=args.description, category=args.category,
    )
    print(f"Updated expense {e.title} {format_currency(e.amount, settings.currency)} ({e.id})")


def cmd_remove_expense(store, args, settings):
    e = store.remove_expense(args.expense_id)
    print(f"Removed expense {e.title}" if e else "Nothing to remove")


def cmd_settle(store, args, settings):
    group = _active(store)
    result = store.settlement()
    if result is None:
        print("No expenses yet, nothing to settle.")
        return
    print(f"{group.name}: total {format_currency(result.total_amount, settings.currency)}")
    for b in result.person_balances:
        print(f"  {display_name(group, b.person_id):<20} paid {b.total_paid:>10.2f}  "
              f"share {b.total_share:>10.2f}  balance {b.balance:>+10.2f}")
    if not result.optimal_transfers:
        print("Everyone is settled.")
    for t in result.optimal_transfers:
        print(f"  {display_name(group, t.from_person_id)} -> {display_name(group, t.to_person_id)}: "
              f"{format_currency(t.amount, settings.currency)}")


def cmd_export_csv(store, args, settings):
    group = _active(store)
    export_expenses_to_csv(group, args.path)
    print(f"Exported {len(group.expenses)} expenses to {args.path}")


def cmd_import_csv(store, args, settings):
    added = store.add_expenses(import_expenses_from_csv(args.path, _active(store)))
    print(f"Imported {len(added)} expenses")


def cmd_export_excel(store, args, settings):
    export_excel(_active(store), args.path, settings.currency)
    print(f"Exported: {args.path}")


def cmd_clear(store, args, settings):
    if not args.yes:
        print("Refusing to erase all data without --yes", file=sys.stderr)
        return 1
    store.clear_all()
    print("All data cleared")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="split-ledger", description="Split group expenses")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("groups", help="list groups").set_defaults(func=cmd_groups)

    p = sub.add_parser("create-group", help="create a group and switch to it")
    p.add_argument("name")
    p.add_argument("--description")
    p.set_defaults(func=cmd_create_group)

    p = sub.add_parser("switch", help="switch the active group")
    p.add_argument("group", help="group name or id")
    p.set_defaults(func=cmd_switch)

    p = sub.add_parser("update-group", help="rename a group")
    p.add_argument("group", help="group name or id")
    p.add_argument("name", help="new name")
    p.add_argument("--description")
    p.set_defaults(func=cmd_update_group)

    p = sub.add_parser("remove-group", help="delete a group")
    p.add_argument("group", help="group name or id")
    p.set_defaults(func=cmd_remove_group)

    p = sub.add_parser("add-person", help="add a member to the active group")
    p.add_argument("name")
    p.add_argument("--avatar")
    p.set_defaults(func=cmd_add_person)

    p = sub.add_parser("remove-person", help="remove a member who never paid")
    p.add_argument("name")
    p.set_defaults(func=cmd_remove_person)

    p = sub.add_parser("add-expense", help="record an expense")
    p.add_argument("title")
    p.add_argument("amount", type=float)
    p.add_argument("--payer", required=True)
    p.add_argument("--participants", nargs="+", help="default: every active member")
    p.add_argument("--category")
    p.add_argument("--description")
    p.set_defaults(func=cmd_add_expense)

    p = sub.add_parser("update-expense", help="edit an expense of the active group")
    p.add_argument("expense_id")
    p.add_argument("title")
    p.add_argument("amount", type=float)
    p.add_argument("--payer", help="default: unchanged")
    p.add_argument("--participants", nargs="+", help="default: unchanged")
    p.add_argument("--category")
    p.add_argument("--description")
    p.set_defaults(func=cmd_update_expense)

    p = sub.add_parser("remove-expense", help="delete an expense")
    p.add_argument("expense_id")
    p.set_defaults(func=cmd_remove_expense)

    sub.add_parser("settle", help="show balances and transfers").set_defaults(func=cmd_settle)

    for name, func, text in (
        ("export-csv", cmd_export_csv, "write expenses to CSV"),
        ("import-csv", cmd_import_csv, "append expenses from CSV"),
        ("export-excel", cmd_export_excel, "write the settlement report to .xlsx"),
    ):
        p = sub.add_parser(name, help=text)
        p.add_argument("path")
        p.set_defaults(func=func)

    p = sub.add_parser("clear", help="erase all groups")
    p.add_argument("--yes", action="store_true")
    p.set_defaults(func=cmd_clear)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application"""
    args = build_parser().parse_args(argv)
    settings = load_settings()
    configure_logging(settings.log_level)
    store = LedgerStore.open(JsonFileStorage(settings.data_dir))
    try:
        return args.func(store, args, settings) or 0
    except LedgerError as ex:
        print(f"error: {ex.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
