"""Pytest configuration for test isolation.

The CLI reads ``SUBSCRIPTION_SCANNER_*`` settings from the environment and
from a ``.env`` in the working directory, and configures the package logger
once per process. Tests must not see a developer's local settings, and a CLI
test must not leave a configured (non-propagating) logger behind for the
``caplog`` assertions of later tests.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

# Make sure the workspace `packages/` dir is on sys.path so `subscription_scanner`
# is importable without installation.
_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
if str(_PKG_DIR) not in sys.path:
    sys.path.insert(0, str(_PKG_DIR))

from subscription_scanner import logging_setup  # noqa: E402
from subscription_scanner.catalog import MerchantCatalog, catalog_from_entries  # noqa: E402

from helpers.statements import MERCHANT_ENTRIES  # noqa: E402

_ENV_VARS = (
    "SUBSCRIPTION_SCANNER_LOG_LEVEL",
    "SUBSCRIPTION_SCANNER_MERCHANTS",
    "SUBSCRIPTION_SCANNER_PAGE_WORKERS",
)


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear scanner settings and run each test from an empty directory."""

    for name in _ENV_VARS:
        # setenv first so teardown also drops values loaded from a .env
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _restore_package_logger() -> Iterator[None]:
    logger = logging.getLogger("subscription_scanner")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    configured = logging_setup._CONFIGURED
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
    logging_setup._CONFIGURED = configured


@pytest.fixture
def catalog() -> MerchantCatalog:
    return catalog_from_entries(MERCHANT_ENTRIES)
