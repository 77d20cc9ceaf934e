"""
Naming styles translating between tables, columns, entities and keys.
"""

from __future__ import annotations

import os

from .base import Style
from .cakephp import CakePHP
from .northwind import NorthWind
from .sakila import Sakila
from .standard import Standard

STYLE_ENV = "RELMAP_STYLE"

STYLES = {
    Standard.name: Standard,
    CakePHP.name: CakePHP,
    NorthWind.name: NorthWind,
    Sakila.name: Sakila,
}


def get_style(name: str | None = None) -> Style:
    """
    Instantiate a style by name; without a name, ``RELMAP_STYLE`` or ``standard``.
    """

    if name is None:
        name = os.getenv(STYLE_ENV) or Standard.name
    key = name.strip().lower()
    try:
        return STYLES[key]()
    except KeyError:
        raise ValueError(
            f"Unknown naming style {name!r}; expected one of {sorted(STYLES)}."
        ) from None


__all__ = ["CakePHP", "NorthWind", "STYLES", "STYLE_ENV", "Sakila", "Standard", "Style", "get_style"]
