"""Path-based access into decoded records.

Paths look like ``engine[0].exhaust_gas_temperature[3]`` or ``mark``: dot
separated segments, each a field name with an optional ``[index]`` for
repeated fields. Field types come from the dataclass annotations in
:mod:`edmtools.decoder.schema`.

Writes coerce the value to the destination type:

- integer fields keep the integer part,
- float fields are rounded to one decimal place,
- enum fields accept the enum member or its numeric value,
- everything else is stored unchanged.

A path naming a field that does not exist makes ``has`` return False and
``get``/``set``/``clear`` no-ops.
"""

from __future__ import annotations

import dataclasses
import math
import numbers
import re
import typing
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Optional

import numpy as np

_SEGMENT = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)(?:\[(\d+)\])?$")


@dataclass(frozen=True)
class FieldType:
    repeated: bool
    scalar: type


@lru_cache(maxsize=None)
def field_types(cls: type) -> dict[str, FieldType]:
    """Map each field of dataclass ``cls`` to its repeated flag and element type."""
    hints = typing.get_type_hints(cls)
    result = {}
    for f in dataclasses.fields(cls):
        tp = hints[f.name]
        repeated = False
        if typing.get_origin(tp) is list:
            repeated = True
            tp = typing.get_args(tp)[0]
        elif typing.get_origin(tp) is typing.Union:
            tp = next(a for a in typing.get_args(tp) if a is not type(None))
        result[f.name] = FieldType(repeated, tp)
    return result


def coerce(scalar: type, value: Any) -> Any:
    """Convert ``value`` for storage in a field of element type ``scalar``."""
    if isinstance(scalar, type) and issubclass(scalar, Enum):
        if isinstance(value, scalar):
            return value
        if isinstance(value, numbers.Number):
            return scalar(int(value))
        return value
    if scalar is bool:
        return bool(value)
    if scalar is int:
        return int(value)
    if scalar is float:
        return math.floor(float(np.float32(value) * np.float32(10.0)) + 0.5) / 10.0
    return value


class _Context:
    """Resolution of one path against a root record."""

    def __init__(self, root: Any, path: str, create: bool) -> None:
        self.container: Any = root
        self.name: Optional[str] = None
        self.field_type: Optional[FieldType] = None
        self.index: Optional[int] = None
        # False when the path names no such field
        self.found = True
        # False when an intermediate element does not exist (read-only resolution)
        self.present = True

        # validate the whole path before creating any intermediate element
        if resolve_type(type(root), path) is None:
            self.found = False
            return

        segments = path.split(".")
        for position, segment in enumerate(segments):
            match = _SEGMENT.match(segment)
            name = match.group(1)
            index = int(match.group(2)) if match.group(2) is not None else None
            field_type = field_types(type(self.container))[name]

            if position == len(segments) - 1:
                self.name, self.field_type, self.index = name, field_type, index
                return

            child = self._descend(name, field_type, index, create)
            if child is None:
                self.present = False
                return
            self.container = child

    def _descend(self, name: str, field_type: FieldType, index: Optional[int], create: bool) -> Any:
        value = getattr(self.container, name)
        if field_type.repeated:
            if create:
                while len(value) <= index:
                    value.append(field_type.scalar())
            return value[index] if len(value) > index else None
        if value is None and create:
            value = field_type.scalar()
            setattr(self.container, name, value)
        return value

    def has(self) -> bool:
        if not (self.found and self.present):
            return False
        value = getattr(self.container, self.name)
        if self.field_type.repeated:
            return len(value) > self.index
        return value is not None

    def get(self) -> Any:
        if not self.has():
            return None
        value = getattr(self.container, self.name)
        return value[self.index] if self.field_type.repeated else value

    def set(self, value: Any) -> None:
        if not (self.found and self.present):
            return
        value = coerce(self.field_type.scalar, value)
        if self.field_type.repeated:
            values = getattr(self.container, self.name)
            if len(values) <= self.index:
                zero = coerce(self.field_type.scalar, 0)
                values.extend([zero] * (self.index - len(values)))
                values.append(value)
            else:
                values[self.index] = value
        else:
            setattr(self.container, self.name, value)

    def clear(self) -> None:
        if not self.has():
            return
        if self.field_type.repeated:
            # repeated elements cannot be unset; zero is the cleared marker
            self.set(0)
        else:
            setattr(self.container, self.name, None)


class FieldAddressor:
    """Mutable path-addressed view over one record."""

    def __init__(self, root: Any) -> None:
        self.root = root

    def has(self, path: str) -> bool:
        return _Context(self.root, path, create=False).has()

    def get(self, path: str) -> Any:
        """Return the value at ``path``; None unless ``has(path)``."""
        return _Context(self.root, path, create=False).get()

    def set(self, path: str, value: Any) -> None:
        _Context(self.root, path, create=True).set(value)

    def clear(self, path: str) -> None:
        _Context(self.root, path, create=False).clear()


def resolve_type(cls: type, path: str) -> Optional[FieldType]:
    """Walk ``path`` through the schema of ``cls`` without touching any instance.

    Returns the type of the addressed field, or None when the path does not
    name one.
    """
    field_type: Optional[FieldType] = None
    for segment in path.split("."):
        match = _SEGMENT.match(segment)
        if match is None or not dataclasses.is_dataclass(cls):
            return None
        field_type = field_types(cls).get(match.group(1))
        if field_type is None or field_type.repeated != (match.group(2) is not None):
            return None
        cls = field_type.scalar
    return field_type
