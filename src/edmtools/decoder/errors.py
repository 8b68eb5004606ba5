"""Fatal decode errors.

Anything the decoder can annotate and step over is recorded as a
``parse_warning`` string instead; these are raised only when the stream can
no longer be followed.
"""

from __future__ import annotations


class DecodeError(Exception):
    """Base class for all fatal decoding errors."""


class UnexpectedEof(DecodeError, EOFError):
    """The byte source ran dry in the middle of a structure."""

    def __init__(self, message: str = "Unexpected EOF") -> None:
        super().__init__(message)


class FormatError(DecodeError, ValueError):
    """The bytes do not follow the recording format."""

    def __init__(self, reason: str, context: str = "") -> None:
        self.reason = reason
        self.context = context
        super().__init__(f"{reason}: {context}" if context else reason)


class TableBuildError(DecodeError, ValueError):
    """Two metrics claim the same decode-mask bit for one version."""
