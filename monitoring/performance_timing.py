# ABOUTME: Phase timing and memory sampling for ingest and export runs
# ABOUTME: Context manager records duration and resident memory per phase

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

import psutil

from utils.console_output import print_info, print_success


@dataclass
class PhaseTiming:
    """Timing for one named phase."""

    name: str
    duration: float
    rss_mb: float
    items: int | None = None

    @property
    def items_per_second(self) -> float:
        if not self.items or self.duration <= 0:
            return 0.0
        return self.items / self.duration


def current_rss_mb() -> float:
    """Resident memory of this process in MB."""
    return psutil.Process().memory_info().rss / 1024 / 1024


class PerformanceTiming:
    """Track timing metrics for each phase of a run."""

    def __init__(self):
        self.phases: list[PhaseTiming] = []
        self.start_time = time.time()
        self.peak_rss_mb = current_rss_mb()

    @contextmanager
    def time_phase(self, phase_name: str):
        """Context manager for timing a phase.

        The yielded dict may receive an ``items`` count for a rate summary.

        Usage:
            with timing.time_phase("Ingest") as phase:
                phase["items"] = inserted
        """
        details: dict[str, Any] = {}
        start = time.time()
        try:
            yield details
        finally:
            rss = current_rss_mb()
            self.peak_rss_mb = max(self.peak_rss_mb, rss)
            self.phases.append(PhaseTiming(phase_name, time.time() - start, rss, details.get("items")))

    def get_summary(self) -> dict[str, Any]:
        return {
            "total_time": time.time() - self.start_time,
            "peak_rss_mb": self.peak_rss_mb,
            "phases": {phase.name: phase.duration for phase in self.phases},
        }

    def print_summary(self) -> None:
        """Print formatted performance summary."""
        summary = self.get_summary()
        total = summary["total_time"]

        print_info("=" * 60)
        for phase in self.phases:
            percent = (phase.duration / total * 100) if total > 0 else 0
            line = f"{phase.name:20s} {phase.duration:7.2f}s  {percent:5.1f}%  {phase.rss_mb:7.1f} MB"
            if phase.items:
                line += f"  {phase.items_per_second:,.0f}/s"
            print_info(line)
        print_info("=" * 60)
        print_success(f"Total time: {total:.2f}s, peak memory: {summary['peak_rss_mb']:.1f} MB")
