"""Recurring charge detection across one or more statements.

Debits are grouped by normalized description, each group is split into
price clusters, and every cluster is classified by the spacing of its
charges. Groups naming a catalog merchant are trusted more: they skip the
one-off blacklist, may consist of a single charge and get a higher
confidence.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum
from statistics import median_high

from .logging_setup import get_logger
from .matcher import match
from .models import Direction, MatchResult, MerchantRecord, TransactionCandidate
from .normalizer import normalize

_log = get_logger("subscription_scanner.recurrence")


class Frequency(StrEnum):
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    YEARLY = "Yearly"


class Confidence(StrEnum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


@dataclass(frozen=True, slots=True)
class RecurringCharge:
    key: str
    merchant: MatchResult
    average_amount: Decimal
    frequency: Frequency
    confidence: Confidence
    transactions: tuple[TransactionCandidate, ...]

    @property
    def display_name(self) -> str:
        return self.merchant.name if self.merchant is not None else self.key


# Merchants whose repeated charges are almost always one-off purchases,
# fees or transfers. Only consulted for groups without a catalog merchant.
ONE_OFF_MERCHANTS: tuple[str, ...] = (
    # retail and marketplaces
    "AMAZON", "EBAY", "ETSY", "WALMART", "TARGET", "COSTCO", "KROGER", "SAFEWAY",
    "PUBLIX", "ALDI", "HOME DEPOT", "LOWES", "MENARDS", "CVS", "WALGREENS",
    "RITE AID", "DOLLAR GENERAL", "DOLLAR TREE", "DOLLARTREE", "FAMILY DOLLAR",
    "WM SUPERCENTER",
    # fuel
    "SHELL", "EXXON", "CHEVRON", "7-ELEVEN", "7 ELEVEN", "CIRCLE K", "MARATHON",
    "BP ", "TEXACO", "VALERO", "SPEEDWAY", "QUIKTRIP", "WAWA", "SHEETZ",
    "RACETRAC", "CEFCO", "MURPHY",
    # banking
    "INTEREST", "FEE", "AUTOPAY", "PAYMENT", "TRANSFER", "ATM", "DEPOSIT",
    "CREDIT CARD", "BANK", "LOAN", "MORTGAGE", "RENT",
    # food
    "PIZZA", "BURGER", "DOORDASH", "UBER EATS", "GRUBHUB", "MCDONALDS",
    "MCDONALD'S", "DOMINO", "STARBUCKS", "CHICK-FIL-A", "CHICK FIL A",
    "CHICKFILA", "TACO BELL", "DUNKIN", "WENDY", "PANDA EXPRESS", "LITTLE CAES",
    "SONIC", "ARBYS", "POPEYES", "CHIPOTLE", "PANERA", "SUBWAY", "FIVE GUYS",
    # travel
    "PARKING", "HOTEL", "AIRBNB", "VRBO",
)  # fmt: skip

CLUSTER_TOLERANCE = Decimal("1.00")
SHOPPING_CLUSTERS = 3
PAIR_VARIANCE = Decimal("0.01")
GROUP_VARIANCE = Decimal("0.10")
UNKNOWN_INTERVAL_TOLERANCE = 0.5
MIN_YEARLY_SPAN_DAYS = 300

_CENT = Decimal("0.01")


def _in(days: float, lo: int, hi: int) -> bool:
    return lo <= days <= hi


def is_one_off(key: str) -> bool:
    upper = key.upper()
    return any(token in upper for token in ONE_OFF_MERCHANTS)


def price_clusters(transactions: list[TransactionCandidate]) -> list[list[TransactionCandidate]]:
    """Split ``transactions`` into runs priced within $1.00 of each run's first charge."""

    clusters: list[list[TransactionCandidate]] = []
    taken = [False] * len(transactions)
    for i, base in enumerate(transactions):
        if taken[i]:
            continue
        cluster = [base]
        taken[i] = True
        for j in range(i + 1, len(transactions)):
            if not taken[j] and abs(transactions[j].amount - base.amount) < CLUSTER_TOLERANCE:
                cluster.append(transactions[j])
                taken[j] = True
        clusters.append(cluster)
    return clusters


def _classify_known(intervals: list[int]) -> tuple[Frequency, Confidence] | None:
    # upper median: with an even count the longer gap decides
    mid = median_high(intervals)
    if _in(mid, 25, 35):
        return Frequency.MONTHLY, Confidence.HIGH
    if _in(mid, 360, 370):
        return Frequency.YEARLY, Confidence.HIGH
    if _in(mid, 6, 8):
        return Frequency.WEEKLY, Confidence.HIGH
    if _in(mid, 20, 70):
        return Frequency.MONTHLY, Confidence.MEDIUM
    return None


def _classify_unknown(
    intervals: list[int], cluster: list[TransactionCandidate]
) -> tuple[Frequency, Confidence] | None:
    mean = sum(intervals) / len(intervals)
    if not all(abs(d - mean) < mean * UNKNOWN_INTERVAL_TOLERANCE for d in intervals):
        return None
    if any(_in(d, 25, 35) for d in intervals):
        return Frequency.MONTHLY, Confidence.LOW
    if any(_in(d, 6, 8) for d in intervals):
        return Frequency.WEEKLY, Confidence.LOW
    span = (cluster[-1].date - cluster[0].date).days
    if _in(median_high(intervals), 360, 370) and span > MIN_YEARLY_SPAN_DAYS:
        return Frequency.YEARLY, Confidence.LOW
    return None


def _classify_cluster(
    cluster: list[TransactionCandidate], known: bool
) -> tuple[Frequency, Confidence] | None:
    if len(cluster) == 1:
        return (Frequency.MONTHLY, Confidence.HIGH) if known else None

    amounts = [t.amount for t in cluster]
    average = sum(amounts) / len(amounts)
    if average == 0:
        return None
    variance = (max(amounts) - min(amounts)) / average
    limit = PAIR_VARIANCE if len(cluster) == 2 else GROUP_VARIANCE
    if variance > limit:
        return None

    intervals = [(b.date - a.date).days for a, b in zip(cluster, cluster[1:])]
    if known:
        return _classify_known(intervals)
    return _classify_unknown(intervals, cluster)


def detect_recurring(
    transactions: Iterable[TransactionCandidate],
    merchants: Iterable[MerchantRecord],
) -> list[RecurringCharge]:
    """Find recurring debits among ``transactions``.

    Results follow the first appearance of each description group; a group
    with several price points (for example two phone lines) can yield one
    charge per price cluster.
    """

    if transactions is None:
        raise ValueError("transactions is required")
    if merchants is None:
        raise ValueError("merchants is required")

    merchant_list = tuple(merchants)
    groups: dict[str, list[TransactionCandidate]] = {}
    for t in transactions:
        if t.direction is not Direction.DEBIT:
            continue
        groups.setdefault(normalize(t.description), []).append(t)

    found: list[RecurringCharge] = []
    for key, items in groups.items():
        merchant = match(key, merchant_list)
        known = merchant is not None
        if not known and (len(items) < 2 or is_one_off(key)):
            continue

        items.sort(key=lambda t: t.date)
        clusters = price_clusters(items)
        if len(clusters) >= SHOPPING_CLUSTERS:
            _log.debug("%s: %d price points, treating as shopping", key, len(clusters))
            continue

        for cluster in clusters:
            verdict = _classify_cluster(cluster, known)
            if verdict is None:
                continue
            frequency, confidence = verdict
            average = sum(t.amount for t in cluster) / len(cluster)
            found.append(
                RecurringCharge(
                    key=key,
                    merchant=merchant,
                    average_amount=average.quantize(_CENT, rounding=ROUND_HALF_UP),
                    frequency=frequency,
                    confidence=confidence,
                    transactions=tuple(cluster),
                )
            )

    _log.info("found %d recurring charges in %d description groups", len(found), len(groups))
    return found


__all__ = [
    "ONE_OFF_MERCHANTS",
    "Confidence",
    "Frequency",
    "RecurringCharge",
    "detect_recurring",
    "is_one_off",
    "price_clusters",
]
