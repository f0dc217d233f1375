"""
Reporting for a ResultsTable: CSV rows, error statistics and plots.
"""

import csv
from collections import defaultdict
from pathlib import Path

import matplotlib
matplotlib.use("Agg")  # Non-interactive backend
import matplotlib.pyplot as plt
import numpy as np

from alloc_sim.profile import ZERO
from alloc_sim.results import error_percent, relative_error

CSV_HEADER = ["profiler", "workload", "stack", "objects", "bytes"]


def iter_rows(table, errors=False):
    """
    Yield one row per (profiler, workload, stack).

    Stacks come from the union over all profilers for the workload, so a
    stack a sampler never hit is reported with zero totals. In error mode
    the ground truth rows are skipped and counts become error strings.
    """
    perfect = table.ground_truth_name()
    for r in table:
        if errors and r.key.profiler == perfect:
            continue
        for st in table.unique_call_sites(r.key.workload):
            got = r.profile.get(st, ZERO)
            objects = str(got.objects)
            nbytes = str(got.bytes)
            if errors:
                want = table.lookup(r.key.workload, perfect).get(st, ZERO)
                objects = error_percent(got.objects, want.objects)
                nbytes = error_percent(got.bytes, want.bytes)
            yield [r.key.profiler, r.key.workload, st, objects, nbytes]


def write_csv(table, out, errors=False):
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    writer.writerows(iter_rows(table, errors=errors))


def error_matrix(table):
    """
    Absolute relative errors against ground truth.

    Returns {profiler: {"objects": [...], "bytes": [...]}} with one entry
    per (workload, stack), infinite errors dropped.
    """
    perfect = table.ground_truth_name()
    errors = defaultdict(lambda: {"objects": [], "bytes": []})
    for r in table:
        if r.key.profiler == perfect:
            continue
        want_prof = table.lookup(r.key.workload, perfect)
        for st in table.unique_call_sites(r.key.workload):
            got = r.profile.get(st, ZERO)
            want = want_prof.get(st, ZERO)
            for field, g, w in (("objects", got.objects, want.objects),
                                ("bytes", got.bytes, want.bytes)):
                err = abs(relative_error(g, w))
                if np.isfinite(err):
                    errors[r.key.profiler][field].append(err)
    return dict(errors)


def compute_stats(values):
    """Summary statistics for a list of errors"""
    if not values:
        return {"mean": 0, "median": 0, "max": 0, "min": 0, "count": 0}
    arr = np.array(values, dtype=float)
    return {
        "mean": float(np.mean(arr)),
        "median": float(np.median(arr)),
        "max": float(np.max(arr)),
        "min": float(np.min(arr)),
        "count": len(values),
    }


def summarize(table):
    return {
        profiler: {field: compute_stats(vals) for field, vals in fields.items()}
        for profiler, fields in error_matrix(table).items()
    }


def print_summary(summary, out):
    """Print per-profiler fidelity statistics."""
    print("=" * 72, file=out)
    print("SAMPLING FIDELITY (absolute relative error vs ground truth)", file=out)
    print("=" * 72, file=out)
    for profiler, fields in summary.items():
        print(f"\nProfiler: {profiler}", file=out)
        for field in ("objects", "bytes"):
            s = fields[field]
            print(f"  {field:<8} mean {s['mean']:8.2f}%  median {s['median']:8.2f}%  "
                  f"max {s['max']:8.2f}%  ({s['count']} stacks)", file=out)
    print("=" * 72, file=out)


def plot_errors(table, output_dir):
    """
    One grouped bar chart per sampling profiler: signed byte and object
    error for each (workload, stack). Returns the written paths.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(exist_ok=True, parents=True)
    perfect = table.ground_truth_name()

    written = []
    for profiler in table.profilers():
        if profiler == perfect:
            continue

        labels, obj_errs, byte_errs = [], [], []
        for workload in table.workloads():
            prof = table.lookup(workload, profiler)
            want_prof = table.lookup(workload, perfect)
            for st in table.unique_call_sites(workload):
                got = prof.get(st, ZERO)
                want = want_prof.get(st, ZERO)
                labels.append(f"{workload}\n{st}")
                obj_errs.append(relative_error(got.objects, want.objects))
                byte_errs.append(relative_error(got.bytes, want.bytes))

        x = np.arange(len(labels))
        width = 0.35

        fig, ax = plt.subplots(figsize=(max(10, len(labels)), 6))
        ax.bar(x - width/2, np.nan_to_num(obj_errs), width, label='objects', alpha=0.7, color='steelblue')
        ax.bar(x + width/2, np.nan_to_num(byte_errs), width, label='bytes', alpha=0.7, color='coral')
        ax.axhline(y=0, color='black', linewidth=1)

        ax.set_xlabel('Workload / Stack', fontsize=12)
        ax.set_ylabel('Relative Error (%)', fontsize=12)
        ax.set_title(f'{profiler}: Estimate vs Ground Truth', fontsize=14, fontweight='bold')
        ax.set_xticks(x)
        ax.set_xticklabels(labels, rotation=30, ha='right', fontsize=8)
        ax.legend()
        ax.grid(axis='y', alpha=0.3)

        plt.tight_layout()
        filename = output_dir / f"{profiler}_errors.png"
        plt.savefig(filename, dpi=150)
        plt.close(fig)
        written.append(filename)

    return written
