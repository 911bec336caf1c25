import csv
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from subscription_scanner.csv_source import find_column, load_csv_transactions, parse_amount
from subscription_scanner.models import Direction


def _write(tmp_path: Path, text: str, name: str = "export.csv", encoding: str = "utf-8") -> Path:
    path = tmp_path / name
    path.write_text(text, encoding=encoding)
    return path


@pytest.mark.parametrize(
    "raw, amount, direction",
    [
        ("$50.00 CR", "50.00", Direction.CREDIT),
        ("CR $100.00", "100.00", Direction.CREDIT),
        ("23.29CR", "23.29", Direction.CREDIT),
        ("$50.00 DR", "50.00", Direction.DEBIT),
        ("($50.00)", "50.00", Direction.DEBIT),
        ("50.00-", "50.00", Direction.DEBIT),
        ("(25.00) CR", "25.00", Direction.DEBIT),
        ("-15.49", "15.49", Direction.DEBIT),
        ("-15.49 CR", "15.49", Direction.CREDIT),
        ("15.49", "15.49", Direction.DEBIT),
    ],
)
def test_markers_and_negatives_decide_direction(raw, amount, direction):
    assert parse_amount(raw) == (Decimal(amount), direction)


@pytest.mark.parametrize(
    "raw, amount",
    [
        ("1,234.56", "1234.56"),
        ("1.234,56", "1234.56"),
        ("12,50", "12.50"),
        ("1,250", "1250.00"),
        ("1,234,567.89", "1234567.89"),
        ("€ 9,99", "9.99"),
        ("1'234.50", "1234.50"),
        ("7", "7.00"),
    ],
)
def test_thousands_and_decimal_separators(raw, amount):
    value, _ = parse_amount(raw)

    assert value == Decimal(amount)


@pytest.mark.parametrize("raw", [None, "", "n/a", "CR", "-", "1.2.3"])
def test_unparseable_amounts(raw):
    assert parse_amount(raw) is None


def test_columns_are_picked_by_keyword():
    headers = ["Posted Date", "Card Member", "Merchant Name", "Debit", "Credit"]

    assert find_column(headers, ("date",)) == "Posted Date"
    assert find_column(headers, ("description", "merchant", "name")) == "Merchant Name"
    assert find_column(headers, ("amount", "debit")) == "Debit"
    assert find_column(headers, ("credit",), exclude="Debit") == "Credit"
    assert find_column(headers, ("memo",)) is None


def test_rows_become_candidates(tmp_path):
    path = _write(
        tmp_path,
        "Transaction Date,Description,Amount\n"
        "09/14/2024,NETFLIX.COM,15.49\n"
        '09/15/2024,"  PAYMENT   THANK YOU ",-250.00 CR\n'
        "2024-09-16,SPOTIFY USA,\"$1,010.99\"\n",
    )

    [netflix, payment, spotify] = load_csv_transactions(path)

    assert netflix.date == date(2024, 9, 14)
    assert netflix.description == "NETFLIX.COM"
    assert netflix.amount == Decimal("15.49")
    assert netflix.direction is Direction.DEBIT
    assert not netflix.year_inferred
    assert payment.description == "PAYMENT THANK YOU"
    assert payment.direction is Direction.CREDIT
    assert spotify.date == date(2024, 9, 16)
    assert spotify.amount == Decimal("1010.99")


def test_invalid_rows_are_skipped(tmp_path):
    path = _write(
        tmp_path,
        "Date,Description,Amount\n"
        ",MISSING DATE,1.00\n"
        "13/45/2024,BAD DATE,1.00\n"
        "09/16/2024,,2.00\n"
        "09/17/2024,BAD AMOUNT,n/a\n"
        "09/18/2024,AB,3.00\n"
        "09/19/2024,HULU,17.99\n",
    )

    out = load_csv_transactions(path)

    assert [c.description for c in out] == ["HULU"]


def test_split_debit_and_credit_columns(tmp_path):
    path = _write(
        tmp_path,
        "Date,Merchant Name,Debit,Credit\n"
        "10/01/24,SPOTIFY USA,10.99,\n"
        "10/02/24,ACME PAYROLL,,\"2,000.00\"\n",
    )

    [spotify, payroll] = load_csv_transactions(path)

    assert spotify.date == date(2024, 10, 1)
    assert spotify.direction is Direction.DEBIT
    assert payroll.amount == Decimal("2000.00")
    assert payroll.direction is Direction.CREDIT


def test_year_less_dates_use_the_reference_year(tmp_path):
    path = _write(tmp_path, "Date,Description,Amount\n09/14,NETFLIX.COM,15.49\n")

    [c] = load_csv_transactions(path, reference_year=2023)

    assert c.date == date(2023, 9, 14)
    assert c.year_inferred


def test_byte_order_mark_is_ignored(tmp_path):
    path = _write(tmp_path, "Date,Description,Amount\n09/14/2024,NETFLIX.COM,15.49\n", encoding="utf-8-sig")

    [c] = load_csv_transactions(path)

    assert c.description == "NETFLIX.COM"


def test_missing_columns_are_reported(tmp_path):
    path = _write(tmp_path, "Date,Memo,Value\n09/14/2024,NETFLIX.COM,15.49\n")

    with pytest.raises(csv.Error, match="description, amount"):
        load_csv_transactions(path)


def test_empty_file_has_no_header(tmp_path):
    with pytest.raises(csv.Error, match="no header"):
        load_csv_transactions(_write(tmp_path, ""))


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_csv_transactions(tmp_path / "nope.csv")
