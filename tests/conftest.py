"""Pytest configuration for dataknobs_crucible tests."""

import sys
from pathlib import Path

import pytest

# Add the package source to path for testing
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from dataknobs_crucible import (  # noqa: E402
    DateTimeFormatRegistry,
    Field,
    Schema,
    constrain_collection_count,
    constrain_value,
)


@pytest.fixture
def registry():
    """A private date/time format registry seeded with the defaults."""
    return DateTimeFormatRegistry()


@pytest.fixture
def server_schema():
    """Schema shared by the translator parity tests."""
    return Schema([
        Field("name", "Server name", str),
        Field("port", "TCP port", int, constraints=(constrain_value(1024, 65535),)),
        Field("tags", "Server tags", list[str], constraints=(constrain_collection_count(lower_bound=1),)),
    ], name="server")
