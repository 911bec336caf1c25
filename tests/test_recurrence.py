from datetime import date, timedelta
from decimal import Decimal

import pytest

from helpers.statements import line
from subscription_scanner.extract import extract
from subscription_scanner.formats import FormatKind, build_format, profile_for
from subscription_scanner.models import Direction, TransactionCandidate
from subscription_scanner.recurrence import (
    Confidence,
    Frequency,
    detect_recurring,
    is_one_off,
    price_clusters,
)


def tx(day: date, description: str, amount: str, direction: Direction = Direction.DEBIT) -> TransactionCandidate:
    return TransactionCandidate(date=day, description=description, amount=Decimal(amount), direction=direction)


def monthly(description: str, amount: str, count: int, start: date = date(2024, 1, 15), every: int = 30):
    return [tx(start + timedelta(days=every * i), description, amount) for i in range(count)]


def test_known_monthly_subscription(catalog):
    [charge] = detect_recurring(monthly("NETFLIX.COM *8329", "15.49", 3), catalog)

    assert charge.key == "NETFLIX"
    assert charge.merchant.id == "netflix"
    assert charge.display_name == "Netflix"
    assert charge.frequency is Frequency.MONTHLY
    assert charge.confidence is Confidence.HIGH
    assert charge.average_amount == Decimal("15.49")
    assert len(charge.transactions) == 3


def test_single_known_charge_counts_as_monthly(catalog):
    [charge] = detect_recurring([tx(date(2024, 9, 21), "SPOTIFY USA", "10.99")], catalog)

    assert charge.frequency is Frequency.MONTHLY
    assert charge.confidence is Confidence.HIGH


def test_known_yearly_and_weekly(catalog):
    yearly = monthly("HULU", "99.99", 2, every=365)
    weekly = monthly("PLANET FITNESS CLUB", "10.00", 4, every=7)

    charges = {c.key: c for c in detect_recurring(yearly + weekly, catalog)}

    assert charges["HULU"].frequency is Frequency.YEARLY
    assert charges["PLANET FITNESS CLUB"].frequency is Frequency.WEEKLY


def test_known_irregular_spacing_is_medium_confidence(catalog):
    [charge] = detect_recurring(monthly("NETFLIX", "15.49", 3, every=45), catalog)

    assert charge.frequency is Frequency.MONTHLY
    assert charge.confidence is Confidence.MEDIUM


def test_known_gaps_use_the_upper_median(catalog):
    days = [date(2024, 1, 1), date(2024, 1, 31), date(2024, 4, 30)]
    txs = [tx(d, "NETFLIX.COM", "15.49") for d in days]

    assert detect_recurring(txs, catalog) == []


def test_even_gap_count_takes_the_longer_gap(catalog):
    # gaps of 30 and 40 days: the averaged median (35) would read as High
    days = [date(2024, 1, 1), date(2024, 1, 31), date(2024, 3, 11)]
    txs = [tx(d, "NETFLIX.COM", "15.49") for d in days]

    [charge] = detect_recurring(txs, catalog)

    assert charge.frequency is Frequency.MONTHLY
    assert charge.confidence is Confidence.MEDIUM


def test_running_balance_does_not_split_a_group(catalog):
    sofi = build_format(profile_for(FormatKind.SOFI))
    lines = [
        line("01/05 GYMCO MEMBERSHIP -29.99 1,204.11", y=600),
        line("02/05 GYMCO MEMBERSHIP -29.99 987.65", y=580),
        line("03/05 GYMCO MEMBERSHIP -29.99 2,310.40", y=560),
    ]

    [charge] = detect_recurring(extract(lines, sofi, reference_year=2024), catalog)

    assert charge.key == "GYMCO MEMBERSHIP"
    assert charge.frequency is Frequency.MONTHLY
    assert charge.confidence is Confidence.LOW
    assert charge.average_amount == Decimal("29.99")
    assert len(charge.transactions) == 3


def test_unknown_monthly_charge_is_low_confidence(catalog):
    [charge] = detect_recurring(monthly("GITHUB INC", "4.00", 4, every=31), catalog)

    assert charge.merchant is None
    assert charge.display_name == "GITHUB INC"
    assert charge.frequency is Frequency.MONTHLY
    assert charge.confidence is Confidence.LOW


def test_unknown_single_charge_is_ignored(catalog):
    assert detect_recurring([tx(date(2024, 1, 1), "GITHUB INC", "4.00")], catalog) == []


def test_unknown_yearly_needs_a_year_long_span(catalog):
    [charge] = detect_recurring(monthly("DOMAIN REGISTRAR", "12.00", 2, every=366), catalog)

    assert charge.frequency is Frequency.YEARLY


def test_unknown_irregular_spacing_is_rejected(catalog):
    days = [date(2024, 1, 1), date(2024, 1, 4), date(2024, 3, 30)]
    txs = [tx(d, "GITHUB INC", "4.00") for d in days]

    assert detect_recurring(txs, catalog) == []


def test_one_off_merchants_are_skipped_unless_known(catalog):
    txs = monthly("SHELL OIL 57444", "40.00", 3)

    assert is_one_off("SHELL OIL")
    assert detect_recurring(txs, catalog) == []


def test_three_price_points_look_like_shopping(catalog):
    txs = [
        tx(date(2024, 1, 1), "FABLETICS", "49.95"),
        tx(date(2024, 2, 1), "FABLETICS", "59.95"),
        tx(date(2024, 3, 1), "FABLETICS", "79.95"),
    ]

    assert detect_recurring(txs, catalog) == []


def test_two_price_points_yield_two_charges(catalog):
    txs = monthly("HULU", "17.99", 2) + monthly("HULU", "7.99", 2, start=date(2024, 1, 20))

    charges = detect_recurring(txs, catalog)

    assert sorted(c.average_amount for c in charges) == [Decimal("7.99"), Decimal("17.99")]


@pytest.mark.parametrize(
    "amounts, found",
    [
        (["20.00", "20.10"], True),
        (["20.00", "20.50"], False),
        (["20.00", "20.50", "20.90"], True),
    ],
)
def test_amount_variance_limits(catalog, amounts, found):
    txs = [tx(date(2024, 1, 5) + timedelta(days=30 * i), "GYM MEMBERSHIP CO", a) for i, a in enumerate(amounts)]

    assert bool(detect_recurring(txs, catalog)) is found


def test_credits_are_ignored(catalog):
    txs = [
        tx(date(2024, 1, 1) + timedelta(days=30 * i), "ACME PAYROLL", "2000.00", Direction.CREDIT)
        for i in range(3)
    ]

    assert detect_recurring(txs, catalog) == []


def test_price_clusters_group_within_a_dollar():
    txs = [tx(date(2024, 1, 1), "X", a) for a in ("10.00", "25.00", "10.99", "24.10", "11.00")]

    clusters = price_clusters(txs)

    assert [[t.amount for t in c] for c in clusters] == [
        [Decimal("10.00"), Decimal("10.99")],
        [Decimal("25.00"), Decimal("24.10")],
        [Decimal("11.00")],
    ]


def test_none_arguments_are_rejected(catalog):
    with pytest.raises(ValueError):
        detect_recurring(None, catalog)  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        detect_recurring([], None)  # type: ignore[arg-type]
