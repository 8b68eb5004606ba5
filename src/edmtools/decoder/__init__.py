"""Decoder for JPI EDM binary recordings."""

from edmtools.decoder.edmlog import DecoderConfig, EdmLog, decode, flight_to_dataframe
from edmtools.decoder.errors import DecodeError, FormatError, TableBuildError, UnexpectedEof
from edmtools.decoder.rewrite import rewrite
from edmtools.decoder.schema import DataRecord, EngineDataRecord, Flight, JpiFile, Metadata
from edmtools.decoder.stream import ByteStream

__all__ = [
    "ByteStream",
    "DataRecord",
    "DecodeError",
    "DecoderConfig",
    "EdmLog",
    "EngineDataRecord",
    "Flight",
    "FormatError",
    "JpiFile",
    "Metadata",
    "TableBuildError",
    "UnexpectedEof",
    "decode",
    "flight_to_dataframe",
    "rewrite",
]
