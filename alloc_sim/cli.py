#!/usr/bin/env python3
"""
Compare allocation sampling profilers against ground truth.

Runs every profiler against every synthetic workload and writes one CSV row
per (profiler, workload, stack) to stdout.

Usage:
    alloc-sim [--exp N] [--rate BYTES] [--seed N] [--no-scale] [--errors]
"""

import argparse
import sys
import time

from alloc_sim.profilers import DEFAULT_RATE, PROFILER_NAMES, make_profiler_factories
from alloc_sim.report import plot_errors, print_summary, summarize, write_csv
from alloc_sim.results import run_all
from alloc_sim.workloads import make_workload_factories

DEFAULT_EXP = 8


def build_parser():
    parser = argparse.ArgumentParser(
        prog="alloc-sim",
        description="Simulate allocation sampling profilers and compare them to ground truth",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    alloc-sim --exp 5 --seed 42
    alloc-sim --exp 6 --errors --summary --plot-dir plots/
        """
    )
    parser.add_argument("--scale", action=argparse.BooleanOptionalAction, default=True,
                        help="Scale sampled values to estimate the true allocations (default: on)")
    parser.add_argument("--exp", type=int, default=DEFAULT_EXP,
                        help=f"Repeat each workload 10^exp times (default: {DEFAULT_EXP})")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for the random number generators (default: wall clock ns)")
    parser.add_argument("--errors", action="store_true",
                        help="Report errors relative to the perfect profiler")
    parser.add_argument("--rate", type=int, default=DEFAULT_RATE,
                        help=f"Sampling interval in bytes (default: {DEFAULT_RATE})")
    parser.add_argument("--profilers", nargs="+", choices=PROFILER_NAMES, default=PROFILER_NAMES,
                        help="Profilers to run; perfect always runs as ground truth (default: all)")
    parser.add_argument("--summary", action="store_true",
                        help="Print error statistics per profiler to stderr")
    parser.add_argument("--plot-dir", default=None,
                        help="Save error plots to this directory")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Print progress to stderr")
    return parser


def run(args, out=None, err=None):
    if out is None:
        out = sys.stdout
    if err is None:
        err = sys.stderr
    if args.exp < 0:
        raise ValueError(f"exp must be >= 0, got {args.exp}")
    seed = args.seed if args.seed is not None else time.time_ns()
    ops = 10 ** args.exp

    if args.verbose:
        print(f"Seed: {seed}  Rate: {args.rate}  Ops per workload: {ops:,}", file=err)

    profilers = make_profiler_factories(args.profilers, scale=args.scale, rate=args.rate, seed=seed)
    workloads = make_workload_factories(args.rate, seed=seed)
    table = run_all(profilers, workloads, ops, log=err if args.verbose else None)

    write_csv(table, out, errors=args.errors)

    if args.summary:
        print_summary(summarize(table), err)

    if args.plot_dir:
        for path in plot_errors(table, args.plot_dir):
            print(f"Saved: {path}", file=err)

    return table


def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        run(args)
    except (ValueError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
