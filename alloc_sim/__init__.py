"""Simulation of allocation sampling profilers against synthetic workloads."""

__version__ = "0.1.0"
