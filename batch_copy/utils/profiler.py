"""
Profiling utilities for batch-copy load runs.

`profile_block` measures a block of producer work:
- Wall-clock time (perf_counter)
- Peak RSS via a background sampling thread (psutil)
- CPU usage (psutil, best-effort snapshot)

Peak RSS is the number to watch: with backpressure working, it stays bounded
by the batch size and channel capacity no matter how many rows are loaded.

Usage:
    with profile_block("load-csv") as stats:
        asyncio.run(load())
    stats.rows = total
    print(stats.summary())
"""

from __future__ import annotations

import contextlib
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Generator, Optional

import psutil


@dataclass
class ProfileStats:
    """
    Container for profiling measurements.
    """

    label: str
    rows: int = 0
    duration_seconds: float = 0.0
    peak_rss_bytes: Optional[int] = None
    cpu_percent: Optional[float] = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def throughput_rows_per_sec(self) -> float:
        return self.rows / self.duration_seconds if self.duration_seconds > 0 else 0.0

    def summary(self) -> str:
        rss_mb = f"{self.peak_rss_bytes / 1_048_576:.1f} MiB" if self.peak_rss_bytes else "n/a"
        cpu = f"{self.cpu_percent:.1f}%" if self.cpu_percent is not None else "n/a"
        return (
            f"{self.label}: {self.rows:,} rows in {self.duration_seconds:.2f}s "
            f"({self.throughput_rows_per_sec:,.0f} rows/s), peak RSS {rss_mb}, CPU {cpu}"
        )


@contextlib.contextmanager
def profile_block(label: str, sample_interval_ms: int = 50) -> Generator[ProfileStats, None, None]:
    """
    Context manager to profile a block of code.

    Parameters
    ----------
    label : str
        Human-friendly label for the profiled block.
    sample_interval_ms : int
        Interval in milliseconds for RSS sampling.
    """
    stats = ProfileStats(label=label)
    process = psutil.Process()
    stop_sampling = threading.Event()
    peak_rss = process.memory_info().rss

    def _sample_memory() -> None:
        nonlocal peak_rss
        while not stop_sampling.wait(timeout=sample_interval_ms / 1000.0):
            try:
                peak_rss = max(peak_rss, process.memory_info().rss)
            except psutil.Error:
                return

    # cpu_percent needs a priming call
    process.cpu_percent(interval=None)
    sampler = threading.Thread(target=_sample_memory, name=f"profile-{label}", daemon=True)
    sampler.start()

    start = time.perf_counter()
    try:
        yield stats
    finally:
        stats.duration_seconds = time.perf_counter() - start
        stop_sampling.set()
        sampler.join(timeout=1.0)
        stats.peak_rss_bytes = peak_rss
        stats.cpu_percent = process.cpu_percent(interval=None)


__all__ = ["ProfileStats", "profile_block"]
