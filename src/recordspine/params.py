"""Collision-free bound-parameter names.

The same column can appear in several comparisons of one statement (and in
nested sub-trees), so every placeholder gets the column name plus a suffix
from a process-wide monotonic counter::

    >>> namer = ParamNamer()
    >>> namer("age"), namer("age")
    ('age_1', 'age_2')

Characters that are not valid in a ``:name`` marker (``table.column``,
spaces, quotes) are folded to ``_`` first.
"""

from __future__ import annotations

import itertools
import re

_UNSAFE = re.compile(r"\W")


class ParamNamer:
    """Generates unique placeholder names from a monotonic counter."""

    def __init__(self, start: int = 1, separator: str = "_") -> None:
        self._counter = itertools.count(start)
        self.separator = separator

    def __call__(self, name: str) -> str:
        base = _UNSAFE.sub("_", str(name)) or "p"
        return f"{base}{self.separator}{next(self._counter)}"


_default_namer = ParamNamer()


def param_id(name: str) -> str:
    """Unique placeholder name for *name* from the process-wide counter."""
    return _default_namer(name)


__all__ = ["ParamNamer", "param_id"]
