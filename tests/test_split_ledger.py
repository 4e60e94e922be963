"""
Tests for the command line entry point
"""
import csv
import json

import pytest
from openpyxl import load_workbook

from csv_handler import COLUMNS
from split_ledger import main


@pytest.fixture(autouse=True)
def data_home(monkeypatch, tmp_path):
    home = tmp_path / "data"
    monkeypatch.setenv("SPLIT_LEDGER_HOME", str(home))
    monkeypatch.setenv("SPLIT_LEDGER_CURRENCY", "$")
    return home


@pytest.fixture
def trip_cli():
    assert main(["create-group", "Trip"]) == 0
    for name in ("Alice", "Bob", "Carol"):
        assert main(["add-person", name]) == 0
    assert main(["add-expense", "Hotel", "90", "--payer", "Alice"]) == 0
    assert main(["add-expense", "Taxi", "30", "--payer", "Bob", "--participants", "Bob", "Carol"]) == 0


def test_settle(trip_cli, capsys):
    capsys.readouterr()

    assert main(["settle"]) == 0

    out = capsys.readouterr().out
    assert "Trip: total $120.00" in out
    assert "Carol -> Alice: $45.00" in out
    assert "Bob -> Alice: $15.00" in out


def test_settle_without_expenses(capsys):
    main(["create-group", "Empty"])

    assert main(["settle"]) == 0
    assert "nothing to settle" in capsys.readouterr().out


def test_removing_payer_reports_error(trip_cli, capsys):
    assert main(["remove-person", "Alice"]) == 1
    assert "payment history" in capsys.readouterr().err

    assert main(["remove-person", "Carol"]) == 0


def test_groups_and_switch(capsys):
    main(["create-group", "One"])
    main(["create-group", "Two"])
    assert main(["switch", "One"]) == 0
    capsys.readouterr()

    main(["groups"])

    lines = capsys.readouterr().out.splitlines()
    assert lines[0].startswith("* One")
    assert lines[1].startswith("  Two")


def test_last_group_cannot_be_removed(capsys):
    main(["create-group", "Only"])

    assert main(["remove-group", "Only"]) == 1
    assert "At least one group" in capsys.readouterr().err


def test_exports(trip_cli, tmp_path):
    xlsx = tmp_path / "report.xlsx"
    out_csv = tmp_path / "expenses.csv"

    assert main(["export-excel", str(xlsx)]) == 0
    assert main(["export-csv", str(out_csv)]) == 0
    assert main(["import-csv", str(out_csv)]) == 0

    assert load_workbook(xlsx).sheetnames[0] == "Expenses"


def test_clear_needs_confirmation(trip_cli, data_home):
    assert main(["clear"]) == 1
    assert (data_home / "groups.json").exists()

    assert main(["clear", "--yes"]) == 0
    assert not (data_home / "groups.json").exists()


def saved_expenses(data_home):
    with open(data_home / "groups.json", encoding="utf-8") as f:
        return json.load(f)[0]["expenses"]


def test_rejected_csv_row_imports_nothing(trip_cli, data_home, tmp_path, capsys):
    path = tmp_path / "in.csv"
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(COLUMNS)
        writer.writerow(["", "", "Lunch", "12.50", "Alice", "Alice;Bob", "", ""])
        writer.writerow(["", "", "Snacks", "4.00", "Bob", "", "", ""])

    assert main(["import-csv", str(path)]) == 1

    assert "Row 3: no participants" in capsys.readouterr().err
    assert [e["title"] for e in saved_expenses(data_home)] == ["Hotel", "Taxi"]


def test_update_group(trip_cli, capsys):
    assert main(["update-group", "Trip", "Holiday", "--description", "Summer"]) == 0
    capsys.readouterr()

    main(["groups"])

    assert capsys.readouterr().out.startswith("* Holiday")
    assert main(["update-group", "Trip", "Again"]) == 1


def test_update_expense(trip_cli, data_home, capsys):
    taxi = saved_expenses(data_home)[1]

    assert main(["update-expense", taxi["id"], "Taxi", "60", "--participants", "Carol"]) == 0
    capsys.readouterr()
    main(["settle"])

    out = capsys.readouterr().out
    assert "Carol -> Alice: $60.00" in out
    assert "Carol -> Bob: $30.00" in out


def test_update_expense_keeps_payer_and_participants(trip_cli, data_home):
    before = saved_expenses(data_home)[1]

    assert main(["update-expense", before["id"], "Cab", "40", "--category", "Travel"]) == 0

    after = saved_expenses(data_home)[1]
    assert (after["id"], after["title"], after["amount"], after["category"]) == (before["id"], "Cab", 40.0, "Travel")
    assert (after["payer_id"], after["participants"]) == (before["payer_id"], before["participants"])


def test_update_unknown_expense(trip_cli, capsys):
    assert main(["update-expense", "nope", "Taxi", "10"]) == 1
    assert "not found" in capsys.readouterr().err
