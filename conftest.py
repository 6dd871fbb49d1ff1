import os

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests marked as live (they hit the real RERA portal).",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "live: tests that make real requests to the RERA portal (RERA_BASE_URL)"
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-live") or os.environ.get("RUN_LIVE_TESTS") == "1":
        return

    skip_live = pytest.mark.skip(reason="live portal test (use --run-live to run)")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)
