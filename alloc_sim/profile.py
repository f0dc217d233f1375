"""
Allocation event model: events, per-stack totals and profiles.
"""

from collections import namedtuple
from collections.abc import Mapping

# One observed allocation. Created by a workload, consumed by one profiler.
AllocationEvent = namedtuple("AllocationEvent", ["stack", "size"])


class Alloc(namedtuple("Alloc", ["objects", "bytes"])):
    """Exact or estimated totals for one call site."""

    __slots__ = ()

    def __add__(self, other):
        return Alloc(self.objects + other.objects, self.bytes + other.bytes)

    def scaled(self, scale):
        """Multiply both totals by scale, truncating to int."""
        return Alloc(int(self.objects * scale), int(self.bytes * scale))


ZERO = Alloc(0, 0)


class Profile(Mapping):
    """
    Mapping of call site -> Alloc.

    A profile is mutable (via add) while its profiler owns it. Copies
    handed out by a profiler are frozen and reject further updates.
    """

    def __init__(self, entries=None):
        self._entries = dict(entries or {})
        self._frozen = False

    def add(self, stack, alloc):
        """Accumulate alloc into the totals for stack."""
        if self._frozen:
            raise TypeError("profile is read-only")
        self._entries[stack] = self._entries.get(stack, ZERO) + alloc

    def copy(self):
        return Profile(self._entries)

    def freeze(self):
        self._frozen = True
        return self

    @property
    def frozen(self):
        return self._frozen

    def stacks(self):
        """Call sites in lexicographic order."""
        return sorted(self._entries)

    def __getitem__(self, stack):
        return self._entries[stack]

    def __iter__(self):
        return iter(self._entries)

    def __len__(self):
        return len(self._entries)

    def __repr__(self):
        items = ", ".join(f"{st}={self._entries[st]}" for st in self.stacks())
        return f"Profile({items})"
