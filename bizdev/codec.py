# bizdev/codec.py
"""
JSON codec for dataclass records.

Each record type is registered once on an explicit SchemaRegistry, which
keeps the field order and the datetime fields for that type. Stores get the
registry passed in; nothing is discovered lazily per type.

Field filtering (e.g. keeping noisy fields out of LLM prompts) is done by
passing include/exclude sets to dumps().
"""

from __future__ import annotations

import dataclasses
import json
import typing
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple, Type

from .errors import DeserializationError


@dataclass(frozen=True)
class RecordSchema:
    cls: type
    fields: Tuple[str, ...]
    required: FrozenSet[str]
    datetime_fields: FrozenSet[str]
    # field name -> scalar type its decoded value must have
    scalar_types: Dict[str, type] = field(default_factory=dict, compare=False)

    def to_dict(
        self,
        obj: Any,
        *,
        include: Optional[Iterable[str]] = None,
        exclude: Iterable[str] = (),
    ) -> Dict[str, Any]:
        allowed = set(include) if include is not None else None
        denied = set(exclude)
        out: Dict[str, Any] = {}
        for name in self.fields:
            if allowed is not None and name not in allowed:
                continue
            if name in denied:
                continue
            value = getattr(obj, name)
            if name in self.datetime_fields and value is not None:
                value = value.isoformat()
            out[name] = value
        return out

    def from_dict(self, data: Any) -> Any:
        if not isinstance(data, dict):
            raise DeserializationError(
                f"{self.cls.__name__}: expected an object, got {type(data).__name__}"
            )
        missing = self.required - data.keys()
        if missing:
            raise DeserializationError(
                f"{self.cls.__name__}: missing field(s) {', '.join(sorted(missing))}"
            )
        kwargs: Dict[str, Any] = {}
        for name in self.fields:
            if name not in data:
                continue
            value = data[name]
            if name in self.datetime_fields and value is not None:
                try:
                    value = datetime.fromisoformat(value)
                except (TypeError, ValueError) as e:
                    raise DeserializationError(
                        f"{self.cls.__name__}.{name}: bad datetime {value!r}"
                    ) from e
            elif name in self.scalar_types:
                _check_scalar(self.cls, name, value, self.scalar_types[name])
            kwargs[name] = value
        return self.cls(**kwargs)


class SchemaRegistry:
    """Explicit table of record types the stores know how to (de)serialize."""

    def __init__(self) -> None:
        self._schemas: Dict[type, RecordSchema] = {}

    def register(self, cls: type, *, datetime_fields: Iterable[str] = ()) -> RecordSchema:
        if not dataclasses.is_dataclass(cls):
            raise TypeError(f"{cls.__name__} is not a dataclass")
        fields = dataclasses.fields(cls)
        names = tuple(f.name for f in fields)
        dt_fields = frozenset(datetime_fields)
        unknown = dt_fields - set(names)
        if unknown:
            raise ValueError(f"{cls.__name__} has no field(s) {', '.join(sorted(unknown))}")
        required = frozenset(
            f.name for f in fields
            if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING
        )
        hints = typing.get_type_hints(cls)
        scalars = {n: hints[n] for n in names if hints.get(n) in _SCALARS}
        schema = RecordSchema(
            cls=cls, fields=names, required=required, datetime_fields=dt_fields, scalar_types=scalars,
        )
        self._schemas[cls] = schema
        return schema

    def schema(self, cls: type) -> RecordSchema:
        try:
            return self._schemas[cls]
        except KeyError:
            raise LookupError(f"{cls.__name__} is not registered") from None

    def __contains__(self, cls: type) -> bool:
        return cls in self._schemas

    # --------------------
    # JSON text
    # --------------------
    def dumps(
        self,
        value: Any,
        *,
        include: Optional[Iterable[str]] = None,
        exclude: Iterable[str] = (),
        indent: Optional[int] = None,
    ) -> str:
        """
        Serialize a registered record, or a list of records of one type.
        Compact separators unless an indent is requested.
        """
        exclude = tuple(exclude)
        if isinstance(value, (list, tuple)):
            obj: Any = [
                self.schema(type(v)).to_dict(v, include=include, exclude=exclude) for v in value
            ]
        else:
            obj = self.schema(type(value)).to_dict(value, include=include, exclude=exclude)
        separators = None if indent is not None else (",", ":")
        return json.dumps(obj, ensure_ascii=False, indent=indent, separators=separators)

    def loads(self, text: str, cls: Type[Any]) -> Any:
        return self.schema(cls).from_dict(_parse(text))

    def loads_list(self, text: str, cls: Type[Any]) -> List[Any]:
        data = _parse(text)
        if not isinstance(data, list):
            raise DeserializationError(f"expected a JSON array of {cls.__name__}")
        schema = self.schema(cls)
        return [schema.from_dict(item) for item in data]


_SCALARS = (bool, int, float, str)


def _check_scalar(cls: type, name: str, value: Any, expected: type) -> None:
    # bool is an int subclass; an int is fine where a float is expected
    if expected is bool:
        ok = isinstance(value, bool)
    elif expected is float:
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
    else:
        ok = isinstance(value, expected) and not isinstance(value, bool)
    if not ok:
        raise DeserializationError(
            f"{cls.__name__}.{name}: expected {expected.__name__}, got {type(value).__name__} {value!r}"
        )


def _parse(text: str) -> Any:
    try:
        return json.loads(text)
    except (TypeError, ValueError) as e:
        raise DeserializationError(f"corrupt JSON: {e}") from e
