"""Extract a range of flights into a new recording.

The text header is kept except for the `$D` directory lines of dropped
flights, and the `$U` registration line when a replacement is given. The
binary flight blocks are copied byte for byte.
"""

from __future__ import annotations

import logging
from typing import Optional

from edmtools.decoder.defs import (
    HEADER_ENCODING,
    HEADER_LINE_TERMINATOR,
    HEADER_POSTFIX,
    HEADER_PREFIX,
)
from edmtools.decoder.edmlog import DecoderConfig, decode
from edmtools.decoder.headers import header_checksum
from edmtools.decoder.metadata import MetadataView
from edmtools.decoder.stream import ByteStream

logger = logging.getLogger(__name__)

_CRLF = HEADER_LINE_TERMINATOR.decode(HEADER_ENCODING)


def format_header_line(data: str) -> str:
    """Wrap ``data`` as ``$data*HH`` with its XOR checksum."""
    return f"{HEADER_PREFIX}{data}{HEADER_POSTFIX}{header_checksum(data):02X}"


def rewrite_header(
    header: str,
    start_index: int,
    end_index: int,
    registration: Optional[str] = None,
) -> str:
    """Keep directory lines ``start_index..end_index`` (inclusive) of ``header``."""
    output = []
    directory_index = 0
    for line in header.split(_CRLF):
        if not line:
            continue
        if registration is not None and line.startswith("$U,"):
            line = format_header_line(f"U,{registration}")
        elif line.startswith("$D,"):
            directory_index += 1
            if not start_index <= directory_index - 1 <= end_index:
                continue
        output.append(line)
    return _CRLF.join(output) + _CRLF


def rewrite(
    data: bytes,
    start_flight: Optional[int] = None,
    end_flight: Optional[int] = None,
    registration: Optional[str] = None,
) -> bytes:
    """Return a recording holding flights ``start_flight..end_flight`` of ``data``.

    Either end may be None for the first/last flight. Raises KeyError for a
    flight number that is not in the directory.
    """
    jpi_file = decode(ByteStream(data), DecoderConfig(headers_only=True))
    metadata = jpi_file.metadata
    view = MetadataView(metadata)

    start_index = 0 if start_flight is None else view.find_flight_index(start_flight)
    end_index = len(view.flights) if end_flight is None else view.find_flight_index(end_flight)
    logger.debug("Retaining directory entries %d through %d", start_index, end_index)

    start_offset = metadata.length
    end_offset = len(data)
    if start_flight is not None or end_flight is not None:
        offset = metadata.length
        for flight in jpi_file.flight:
            if flight.flight_number == start_flight:
                start_offset = offset
            offset += flight.header_length + flight.data_length
            if flight.flight_number == end_flight:
                end_offset = offset
    logger.debug("Retaining data offset %d through %d", start_offset, end_offset)

    header = data[:metadata.length].decode(HEADER_ENCODING)
    new_header = rewrite_header(header, start_index, end_index, registration)
    return new_header.encode(HEADER_ENCODING) + data[start_offset:end_offset]
