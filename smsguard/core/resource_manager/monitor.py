"""
Memory pressure monitoring and relief.

Author: Yobie Benjamin
Date: 2026-10-19
"""

import asyncio
import gc
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Deque, Dict, Optional, Tuple

import psutil
from loguru import logger

MB = 1024 * 1024

# Returns (used_bytes, max_bytes)
MemoryProbe = Callable[[], Tuple[int, int]]


@dataclass(frozen=True)
class MemorySample:
    """Memory usage at a point in time."""

    used_bytes: int
    max_bytes: int
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def used_mb(self) -> float:
        return self.used_bytes / MB

    @property
    def max_mb(self) -> float:
        return self.max_bytes / MB

    @property
    def percent_used(self) -> float:
        if self.max_bytes <= 0:
            return 0.0
        return self.used_bytes / self.max_bytes * 100

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "used_mb": round(self.used_mb, 1),
            "max_mb": round(self.max_mb, 1),
            "percent_used": round(self.percent_used, 1),
        }


class ResourceMonitor:
    """
    Watches process memory and frees what it can under pressure.

    Relief is advisory: it never blocks processing and never raises.
    """

    def __init__(
        self,
        threshold_percent: float = 80.0,
        check_interval: float = 10.0,
        relief_pause: float = 0.1,
        max_memory_mb: Optional[float] = None,
        enable_monitoring: bool = True,
        probe: Optional[MemoryProbe] = None,
        history_size: int = 100,
    ):
        """
        Initialize resource monitor.

        Args:
            threshold_percent: Usage above this percentage counts as pressure
            check_interval: Seconds between background checks
            relief_pause: Pause between the two collection passes
            max_memory_mb: Memory ceiling (defaults to total system memory)
            enable_monitoring: Whether start_monitoring runs the background task
            probe: Callable returning (used_bytes, max_bytes)
            history_size: Number of samples kept for statistics
        """
        self.threshold_percent = threshold_percent
        self.check_interval = check_interval
        self.relief_pause = relief_pause
        self.max_memory_mb = max_memory_mb
        self.enable_monitoring = enable_monitoring
        self._probe = probe or self._psutil_probe

        self._history: Deque[MemorySample] = deque(maxlen=history_size)
        self._monitoring_task: Optional[asyncio.Task] = None
        self._relief_count = 0

    @classmethod
    def from_settings(cls, settings) -> "ResourceMonitor":
        """Create monitor from `SMSGuardSettings`."""
        memory = settings.memory
        return cls(
            threshold_percent=memory.threshold_percent,
            check_interval=memory.check_interval_seconds,
            relief_pause=memory.relief_pause_seconds,
            max_memory_mb=memory.max_memory_mb,
            enable_monitoring=memory.enable_monitoring,
        )

    def _psutil_probe(self) -> Tuple[int, int]:
        used = psutil.Process().memory_info().rss
        if self.max_memory_mb is not None:
            limit = int(self.max_memory_mb * MB)
        else:
            limit = psutil.virtual_memory().total
        return used, limit

    def sample(self) -> MemorySample:
        """Take a memory sample and record it."""
        used, limit = self._probe()
        sample = MemorySample(used_bytes=used, max_bytes=limit)
        self._history.append(sample)
        return sample

    def is_pressured(self) -> bool:
        """Check if memory usage is above the threshold."""
        try:
            return self.sample().percent_used > self.threshold_percent
        except Exception as e:
            logger.warning(f"Memory check failed: {e}")
            return False

    async def relieve(self) -> None:
        """Run collection passes and log the outcome."""
        try:
            before = self.sample()
            logger.warning(
                f"Memory usage at {before.percent_used:.1f}%, running memory optimization"
            )

            gc.collect()
            await asyncio.sleep(self.relief_pause)
            gc.collect()

            after = self.sample()
            self._relief_count += 1
            logger.info(
                f"Memory optimization complete: {after.percent_used:.1f}% "
                f"(freed {max(before.used_mb - after.used_mb, 0.0):.1f}MB)"
            )
        except Exception as e:
            logger.error(f"Error during memory optimization: {e}")

    async def start_monitoring(self) -> None:
        """Start background memory monitoring."""
        if self.enable_monitoring and not self._monitoring_task:
            self._monitoring_task = asyncio.create_task(self._monitor_loop())
            logger.debug("Memory monitoring started")

    async def stop_monitoring(self) -> None:
        """Stop background memory monitoring."""
        if self._monitoring_task:
            self._monitoring_task.cancel()
            try:
                await self._monitoring_task
            except asyncio.CancelledError:
                pass
            self._monitoring_task = None
            logger.debug("Memory monitoring stopped")

    @property
    def is_monitoring(self) -> bool:
        return self._monitoring_task is not None and not self._monitoring_task.done()

    async def _monitor_loop(self) -> None:
        while True:
            try:
                if self.is_pressured():
                    await self.relieve()
                await asyncio.sleep(self.check_interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Monitoring error: {e}")
                await asyncio.sleep(self.check_interval)

    def get_memory_usage_string(self) -> str:
        """Human-readable memory usage."""
        sample = self.sample()
        return (
            f"Memory: {sample.percent_used:.0f}% used "
            f"({sample.used_mb:.0f}MB / {sample.max_mb:.0f}MB)"
        )

    def get_statistics(self) -> Dict[str, Any]:
        """Get memory usage statistics over recent samples."""
        current = self.sample()
        percents = [s.percent_used for s in self._history]

        return {
            "current": current.to_dict(),
            "samples": len(percents),
            "mean_percent": sum(percents) / len(percents),
            "peak_percent": max(percents),
            "relief_count": self._relief_count,
            "config": {
                "threshold_percent": self.threshold_percent,
                "check_interval": self.check_interval,
                "max_memory_mb": self.max_memory_mb,
            },
        }
