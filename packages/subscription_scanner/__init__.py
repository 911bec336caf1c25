"""Public interface for the ``subscription_scanner`` package.

This module exposes the pipeline operations and the public records as the
stable import surface. There is no runtime logic here, only re-exports.
"""

from .catalog import CatalogError, MerchantCatalog, catalog_from_entries, load_catalog
from .csv_source import load_csv_transactions, parse_amount
from .extract import extract
from .formats import ColumnHints, FormatKind, SignRule, StatementFormat, detect
from .layout import reconstruct
from .matcher import MatchDetail, MatchTier, match, match_details
from .models import (
    Direction,
    MatchedTransaction,
    MatchResult,
    MerchantRecord,
    PositionedTextFragment,
    ReconstructedLine,
    TransactionCandidate,
)
from .normalizer import normalize
from .pipeline import PageDiagnostic, StatementScan, scan_statement
from .recurrence import Confidence, Frequency, RecurringCharge, detect_recurring

__all__ = [
    # Pipeline
    "reconstruct",
    "detect",
    "extract",
    "normalize",
    "match",
    "match_details",
    "scan_statement",
    "detect_recurring",
    # Sources
    "load_csv_transactions",
    "parse_amount",
    # Catalog
    "CatalogError",
    "MerchantCatalog",
    "catalog_from_entries",
    "load_catalog",
    # Models
    "ColumnHints",
    "Confidence",
    "Direction",
    "FormatKind",
    "Frequency",
    "MatchDetail",
    "MatchResult",
    "MatchTier",
    "MatchedTransaction",
    "MerchantRecord",
    "PageDiagnostic",
    "PositionedTextFragment",
    "ReconstructedLine",
    "RecurringCharge",
    "SignRule",
    "StatementFormat",
    "StatementScan",
    "TransactionCandidate",
]
