"""
Synthetic allocation workloads.

A workload drives a profiler with malloc calls at two call sites,
"small" and "big". Its name encodes its configuration so results from
differently configured workloads never collide.
"""

from alloc_sim.profile import AllocationEvent
from alloc_sim.profilers import make_rng

DEFAULT_SMALL = 16
DEFAULT_BIG = 128


def _check_size(size):
    if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
        raise ValueError(f"allocation size must be a positive integer, got {size!r}")
    return size


class SequentialWorkload:
    """All small allocations first, then all big ones."""

    def __init__(self, small=DEFAULT_SMALL, big=DEFAULT_BIG):
        self.small = _check_size(small)
        self.big = _check_size(big)

    def name(self):
        return f"sequential-{self.small}-{self.big}"

    def run(self, ops, profiler):
        for _ in range(ops):
            profiler.malloc(self.small, "small")
        for _ in range(ops):
            profiler.malloc(self.big, "big")


class InterleaveWorkload:
    """
    Alternates small and big allocations.

    With an rng, each of the two allocations in an iteration happens
    independently with probability 0.5.
    """

    def __init__(self, small=DEFAULT_SMALL, big=DEFAULT_BIG, rng=None):
        self.small = _check_size(small)
        self.big = _check_size(big)
        self.rng = rng

    def name(self):
        rand = "-rand" if self.rng is not None else ""
        return f"interleave{rand}-{self.small}-{self.big}"

    def _coin(self):
        return self.rng is None or self.rng.random() < 0.5

    def run(self, ops, profiler):
        for _ in range(ops):
            if self._coin():
                profiler.malloc(self.small, "small")
            if self._coin():
                profiler.malloc(self.big, "big")


class TraceWorkload:
    """
    Replays a fixed sequence of AllocationEvents once per op.

    The name lists every stack:size pair so traces with different events
    never share a result key.
    """

    def __init__(self, events, name="custom"):
        self.events = [AllocationEvent(st, _check_size(size)) for st, size in events]
        self.label = name

    def name(self):
        events = "+".join(f"{ev.stack}:{ev.size}" for ev in self.events)
        return f"trace-{self.label}-{events}"

    def run(self, ops, profiler):
        for _ in range(ops):
            for ev in self.events:
                profiler.malloc(ev.size, ev.stack)


def make_workload_factories(rate, seed=0, small=DEFAULT_SMALL, big=DEFAULT_BIG):
    """
    The standard workload set: each shape with a regular big size and with
    a big size of twice the sampling rate (always sampled).
    """
    factories = []
    for big_size in (big, rate * 2):
        factories += [
            lambda b=big_size: SequentialWorkload(small, b),
            lambda b=big_size: InterleaveWorkload(small, b),
            lambda b=big_size: InterleaveWorkload(small, b, rng=make_rng(seed)),
        ]
    return factories
