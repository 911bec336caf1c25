import logging

import pytest

from helpers.statements import cells_line, line
from subscription_scanner.formats import (
    GENERIC,
    PROFILES,
    ColumnHints,
    FormatKind,
    SignRule,
    detect,
    profile_for,
)


def test_unknown_layout_resolves_to_generic(caplog):
    lines = [line("ACME CREDIT UNION"), line("09/14 NETFLIX.COM 15.49")]

    with caplog.at_level(logging.INFO, logger="subscription_scanner"):
        fmt = detect(lines)

    assert fmt == GENERIC
    assert fmt.is_generic
    assert fmt.table_start_page == 0
    assert "generic" in caplog.text


@pytest.mark.parametrize(
    "marker, kind, start_page",
    [
        ("USAA FEDERAL SAVINGS BANK", FormatKind.USAA, 1),
        ("Visit sofi.com/help", FormatKind.SOFI, 0),
        ("Citibank, N.A.", FormatKind.CITI, 2),
        ("JPMorgan Chase Bank, N.A.", FormatKind.CHASE, 0),
        ("American Express National Bank", FormatKind.AMEX, 0),
    ],
)
def test_issuer_markers_select_profiles(marker, kind, start_page):
    fmt = detect([line("Account summary"), line(marker, y=400)])

    assert fmt.kind is kind
    assert fmt.table_start_page == start_page


def test_priority_order_decides_between_several_issuers():
    # a Citi card statement that mentions paying from a Chase account
    lines = [line("Payment from JPMORGAN CHASE checking"), line("Questions? citi.com")]

    assert detect(lines).kind is FormatKind.CITI


def test_only_first_two_pages_are_inspected():
    lines = [
        line("Statement", page=0),
        line("Continued", page=1),
        line("American Express rewards terms", page=2),
    ]

    assert detect(lines).is_generic


def test_usaa_records_debit_and_credit_column_positions():
    lines = [
        line("USAA FEDERAL SAVINGS BANK", y=760),
        cells_line((40, "Date"), (120, "Description"), (380, "Debits"), (470, "Credits"), y=600),
    ]

    fmt = detect(lines)

    assert fmt.sign_rule is SignRule.COLUMN
    assert fmt.column_hints == ColumnHints(debit_x=380, credit_x=470)


def test_usaa_without_header_row_has_no_hints():
    fmt = detect([line("usaa.com")])

    assert fmt.kind is FormatKind.USAA
    assert fmt.column_hints is None


def test_sofi_profile_carries_row_filters():
    fmt = detect([line("SoFi Bank, N.A. Member FDIC")])

    assert fmt.sign_rule is SignRule.MINUS_IS_DEBIT
    assert fmt.drop_zero_amounts
    assert "MOVED BALANCES" in fmt.skip_phrases


def test_profiles_cover_every_issuer_once():
    kinds = [p.kind for p in PROFILES]
    assert len(kinds) == len(set(kinds))
    assert set(kinds) == set(FormatKind) - {FormatKind.GENERIC}
    assert profile_for(FormatKind.GENERIC) is None


def test_none_input_is_rejected():
    with pytest.raises(ValueError):
        detect(None)  # type: ignore[arg-type]
