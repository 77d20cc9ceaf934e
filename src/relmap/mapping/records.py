"""
Entity records and field access helpers.

The mapper works with three kinds of entities: :class:`Record` (the default
hydration type), plain mappings such as ``dict``, and arbitrary objects whose
public instance attributes are the fields.
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from enum import Enum
from types import FunctionType, MethodType, ModuleType
from typing import Any, Dict, Iterator


class Record(MutableMapping):
    """
    Untyped entity whose fields are both attributes and mapping keys.

    ``vars(record)`` lists exactly the fields, so ``record.text`` and
    ``record["text"]`` are the same value.
    """

    def __init__(self, fields: Mapping[str, Any] | None = None, /, **values: Any) -> None:
        if fields:
            self.__dict__.update(fields)
        self.__dict__.update(values)

    def __getitem__(self, key: str) -> Any:
        try:
            return self.__dict__[key]
        except KeyError:
            raise KeyError(key) from None

    def __setitem__(self, key: str, value: Any) -> None:
        self.__dict__[key] = value

    def __delitem__(self, key: str) -> None:
        try:
            del self.__dict__[key]
        except KeyError:
            raise KeyError(key) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self.__dict__)

    def __len__(self) -> int:
        return len(self.__dict__)

    def __repr__(self) -> str:
        body = ", ".join(f"{key}={value!r}" for key, value in self.__dict__.items())
        return f"Record({body})"


def is_entity(value: Any) -> bool:
    """
    Return ``True`` when ``value`` can be mapped to a row.
    """

    if value is None or isinstance(value, (str, bytes, int, float, bool)):
        return False
    if isinstance(value, Mapping):
        return True
    if isinstance(value, (type, ModuleType, FunctionType, MethodType, Enum)):
        return False
    return hasattr(value, "__dict__")


def fields_of(entity: Any) -> Dict[str, Any]:
    """
    Snapshot of an entity's fields in declaration order.
    """

    if isinstance(entity, Record):
        return dict(entity.__dict__)
    if isinstance(entity, Mapping):
        return dict(entity.items())
    return {key: value for key, value in vars(entity).items() if not key.startswith("_")}


def get_field(entity: Any, name: str, default: Any = None) -> Any:
    if isinstance(entity, Record):
        return entity.__dict__.get(name, default)
    if isinstance(entity, Mapping):
        return entity.get(name, default)
    return getattr(entity, name, default)


def set_field(entity: Any, name: str, value: Any) -> None:
    if isinstance(entity, Record):
        entity.__dict__[name] = value
    elif isinstance(entity, MutableMapping):
        entity[name] = value
    else:
        setattr(entity, name, value)


def has_field(entity: Any, name: str) -> bool:
    if isinstance(entity, Record):
        return name in entity.__dict__
    if isinstance(entity, Mapping):
        return name in entity
    return hasattr(entity, name)
