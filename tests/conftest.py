"""Shared fixtures for the edmtools test suite."""

import pytest

from edmtools.decoder.headers import parse_headers
from edmtools.decoder.metadata import MetadataView
from edmtools.decoder.stream import ByteStream

from tests.builders import text_header


def make_view(**header_kw):
    """MetadataView for a header with no flights."""
    return MetadataView(parse_headers(ByteStream(text_header([], **header_kw))))


@pytest.fixture
def edm830():
    """Single-engine unit with a single-byte decode mask (V1 metrics, GPH)."""
    return make_view(model=830)


@pytest.fixture
def edm900():
    """900-series unit with a 16-bit decode mask (V4 metrics, GPH)."""
    return make_view(model=900, firmware=108, protocol=2)
