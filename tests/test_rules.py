from datetime import date
from decimal import Decimal

import pytest

from subscription_scanner.rules import (
    ISO_DATE,
    MONTH_NAME_DATE,
    SLASH_DATE,
    expand_year,
    find_amount,
    find_date,
)


@pytest.mark.parametrize(
    "text, expected, inferred",
    [
        ("09/14 NETFLIX", date(2024, 9, 14), True),
        ("1/5/23 SPOTIFY", date(2023, 1, 5), False),
        ("12/31/1999 Y2K", date(1999, 12, 31), False),
        ("02/03/75 OLD", date(1975, 2, 3), False),
    ],
)
def test_slash_dates(text, expected, inferred):
    found = SLASH_DATE.find(text, 2024)

    assert found is not None
    assert found.value == expected
    assert found.year_inferred is inferred


def test_slash_date_skips_impossible_calendar_dates():
    found = find_date("02/30 BAD 03/02 GOOD", 2023)

    assert found is not None
    assert found.value == date(2023, 3, 2)
    assert found.text == "03/02"


def test_slash_date_ignores_fractions_of_longer_numbers():
    assert SLASH_DATE.find("REF 123/4567", 2024) is None
    assert SLASH_DATE.find("13/05", 2024) is None


def test_iso_dates():
    found = ISO_DATE.find("2024-02-29 ADOBE", 2020)

    assert found is not None
    assert found.value == date(2024, 2, 29)
    assert not found.year_inferred


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Feb 27 APPLE.COM/BILL", date(2024, 2, 27)),
        ("SEPT 3 HULU", date(2024, 9, 3)),
        ("January 9, 2022 RENT", date(2022, 1, 9)),
    ],
)
def test_month_name_dates(text, expected):
    found = MONTH_NAME_DATE.find(text, 2024)

    assert found is not None
    assert found.value == expected


def test_month_name_rule_does_not_read_amounts_as_days():
    assert MONTH_NAME_DATE.find("MAY 12.99", 2024) is None


def test_slash_rule_outranks_other_rules():
    found = find_date("Feb 27 posted 03/01", 2024)

    assert found is not None
    assert found.value == date(2024, 3, 1)


def test_no_date():
    assert find_date("MISC FEE 12.00", 2024) is None


@pytest.mark.parametrize(
    "raw, year",
    [("00", 2000), ("50", 2050), ("51", 1951), ("99", 1999), ("2031", 2031)],
)
def test_two_digit_year_expansion(raw, year):
    assert expand_year(raw) == year


@pytest.mark.parametrize(
    "text, value, negative",
    [
        ("NETFLIX.COM 15.49", Decimal("15.49"), False),
        ("PAYMENT THANK YOU -250.00", Decimal("250.00"), True),
        ("RENT $1,850.00", Decimal("1850.00"), False),
        ("TRANSFER 12345.67", Decimal("12345.67"), False),
        ("ZERO 0.00", Decimal("0.00"), False),
    ],
)
def test_amounts(text, value, negative):
    found = find_amount(text)

    assert found is not None
    assert found.value == value
    assert found.negative is negative


def test_first_amount_on_the_line_wins():
    found = find_amount("HULU 17.99 BALANCE 1,204.33")

    assert found is not None
    assert found.value == Decimal("17.99")


@pytest.mark.parametrize("text", ["MISC FEE 12", "VERSION 1.2.3", "RATE 4.125 PCT"])
def test_amount_requires_exactly_two_decimals(text):
    assert find_amount(text) is None
