"""Identifier sources for tables and joins created by the parser."""

import itertools
import uuid
from typing import Callable, Dict

IdFactory = Callable[[str], str]


def uuid_id_factory(prefix: str) -> str:
    """Default id source: unique across independent parse calls."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class SequentialIdFactory:
    """
    Caller-owned monotonic counter, one sequence per prefix.

    >>> ids = SequentialIdFactory()
    >>> ids("table"), ids("table"), ids("join")
    ('table_1', 'table_2', 'join_1')
    """

    def __init__(self, start: int = 1):
        self._start = start
        self._counters: Dict[str, itertools.count] = {}

    def __call__(self, prefix: str) -> str:
        counter = self._counters.setdefault(prefix, itertools.count(self._start))
        return f"{prefix}_{next(counter)}"
