"""
Run every profiler against every workload and index the resulting profiles.
"""

import math
from collections import namedtuple

ResultKey = namedtuple("ResultKey", ["workload", "profiler"])
Result = namedtuple("Result", ["key", "profile"])


class ResultsTable:
    """Ordered results plus an index by (workload, profiler)."""

    def __init__(self):
        self.results = []
        self.index = {}

    def add(self, key, profile):
        if key in self.index:
            raise KeyError(f"duplicate result for {key.profiler} x {key.workload}")
        self.index[key] = profile
        self.results.append(Result(key, profile))

    def lookup(self, workload, profiler):
        return self.index[ResultKey(workload, profiler)]

    def ground_truth_name(self):
        """The first profiler run is the reference for error reports."""
        if not self.results:
            return None
        return self.results[0].key.profiler

    def workloads(self):
        seen = []
        for r in self.results:
            if r.key.workload not in seen:
                seen.append(r.key.workload)
        return seen

    def profilers(self):
        seen = []
        for r in self.results:
            if r.key.profiler not in seen:
                seen.append(r.key.profiler)
        return seen

    def unique_call_sites(self, workload):
        """Sorted union of stacks seen by any profiler for workload."""
        stacks = set()
        for r in self.results:
            if r.key.workload == workload:
                stacks.update(r.profile)
        return sorted(stacks)

    def __iter__(self):
        return iter(self.results)

    def __len__(self):
        return len(self.results)


def run_all(profiler_factories, workload_factories, ops, log=None):
    """
    Run each (profiler, workload) combination with fresh instances.

    Profilers carry sampling state, so nothing is reused across runs.
    """
    if ops <= 0:
        raise ValueError(f"ops must be positive, got {ops}")

    table = ResultsTable()
    for new_profiler in profiler_factories:
        for new_workload in workload_factories:
            profiler = new_profiler()
            workload = new_workload()
            if log is not None:
                print(f"run {profiler.name()} x {workload.name()} ({ops:,} ops)", file=log)
            workload.run(ops, profiler)
            key = ResultKey(workload=workload.name(), profiler=profiler.name())
            table.add(key, profiler.profile())

    if log is not None:
        print(f"completed {len(table)} runs", file=log)
    return table


def relative_error(got, want):
    """
    (got - want) / want in percent.

    A zero reference yields 0.0 when got is also zero, otherwise an
    infinity signed like got.
    """
    if want == 0:
        if got == 0:
            return 0.0
        return math.copysign(math.inf, got)
    return (got - want) / want * 100


def error_percent(got, want):
    err = relative_error(got, want)
    if math.isinf(err):
        return "+inf%" if err > 0 else "-inf%"
    return f"{err:.2f}%"
