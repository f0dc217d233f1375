"""
Simulated allocation profilers.

Every profiler observes a stream of malloc(size, stack) calls and reports a
Profile estimating the true per-stack allocation totals:

    perfect  records every allocation (ground truth)
    dotnet   samples one allocation every `rate` bytes
    go       samples at a Poisson rate of one sample per `rate` bytes
"""

import functools

import numpy as np

from alloc_sim.profile import Alloc, Profile

DEFAULT_RATE = 100 * 1024


def _check_rate(rate):
    if isinstance(rate, bool) or not isinstance(rate, (int, np.integer)) or rate <= 0:
        raise ValueError(f"sampling rate must be a positive integer, got {rate!r}")
    return int(rate)


def make_rng(seed):
    """
    Build a fresh generator for one component.

    Seeds are int64 on the command line; numpy wants them unsigned.
    """
    return np.random.default_rng(seed & 0xFFFFFFFFFFFFFFFF)


class PerfectProfiler:
    """Records every allocation and reports the results."""

    def __init__(self):
        self.prof = Profile()

    @classmethod
    def from_config(cls, scale, rate, seed):
        return cls()

    def name(self):
        return "perfect"

    def malloc(self, size, stack):
        self.prof.add(stack, Alloc(1, size))

    def profile(self):
        return self.prof.copy().freeze()


class DotNetProfiler:
    """
    Records one allocation every `rate` bytes.

    The sample is attributed to whichever allocation crosses the threshold.
    When scaling, each stack is scaled by rate / avg_size, clamped to 1 for
    objects bigger than the sampling interval (those are always sampled).
    """

    def __init__(self, scale=True, rate=DEFAULT_RATE):
        self.scale = scale
        self.rate = _check_rate(rate)
        self.next_sample = 0
        self.prof = Profile()

    @classmethod
    def from_config(cls, scale, rate, seed):
        return cls(scale=scale, rate=rate)

    def name(self):
        return "dotnet"

    def malloc(self, size, stack):
        if size < self.next_sample:
            self.next_sample -= size
        else:
            self.prof.add(stack, Alloc(1, size))
            self.next_sample = self.rate

    def scale_factor(self, avg_size):
        # zero-byte samples carry no volume to scale
        if avg_size <= 0 or avg_size > self.rate:
            return 1.0
        return self.rate / avg_size

    def profile(self):
        if not self.scale:
            return self.prof.copy().freeze()
        scaled = Profile()
        for st, v in self.prof.items():
            avg_size = v.bytes / v.objects
            scaled.add(st, v.scaled(self.scale_factor(avg_size)))
        return scaled.freeze()


class GoProfiler:
    """
    Records an allocation, then draws the distance in bytes to the next
    sample from an exponential distribution with mean `rate`.

    Scaling uses 1 / (1 - e^(-avg_size/rate)), the inverse probability that
    a Poisson process places a sample inside an object of avg_size bytes.
    """

    def __init__(self, rng, scale=True, rate=DEFAULT_RATE):
        self.rng = rng
        self.scale = scale
        self.rate = _check_rate(rate)
        self.next_sample = 0
        self.prof = Profile()

    @classmethod
    def from_config(cls, scale, rate, seed):
        return cls(make_rng(seed), scale=scale, rate=rate)

    def name(self):
        return "go"

    def malloc(self, size, stack):
        if size < self.next_sample:
            self.next_sample -= size
        else:
            self.prof.add(stack, Alloc(1, size))
            self.next_sample = int(self.rate * self.rng.standard_exponential())

    def scale_factor(self, avg_size):
        if avg_size <= 0:
            return 1.0
        return 1 / (1 - np.exp(-avg_size / self.rate))

    def profile(self):
        if not self.scale:
            return self.prof.copy().freeze()
        scaled = Profile()
        for st, v in self.prof.items():
            avg_size = v.bytes / v.objects
            scaled.add(st, v.scaled(self.scale_factor(avg_size)))
        return scaled.freeze()


# Order matters: the first profiler is the ground truth for error reports.
PROFILERS = {
    "perfect": PerfectProfiler,
    "dotnet": DotNetProfiler,
    "go": GoProfiler,
}
PROFILER_NAMES = list(PROFILERS)


def make_profiler_factories(names=None, scale=True, rate=DEFAULT_RATE, seed=0):
    """
    Return zero-argument callables building a fresh profiler per run.

    The perfect profiler is always included and always first.
    """
    rate = _check_rate(rate)
    names = list(names or PROFILER_NAMES)
    unknown = [n for n in names if n not in PROFILER_NAMES]
    if unknown:
        raise ValueError(f"unknown profiler(s): {', '.join(unknown)}")

    ordered = PROFILER_NAMES[:1] + [n for n in PROFILER_NAMES[1:] if n in names]
    return [
        functools.partial(PROFILERS[n].from_config, scale, rate, seed)
        for n in ordered
    ]
