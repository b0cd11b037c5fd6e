"""Metrics for tracking API performance.

Thread-safe counters and latency tracking for recommendation calls. One
tracker is created per application and kept on ``app.state``.
"""

import threading
from typing import Dict


class MetricsTracker:
    """Counts inference calls and tracks their latency."""

    def __init__(self):
        self._lock = threading.Lock()
        self.reset()

    def record_inference(self, latency_ms: float) -> None:
        """Record an inference call with its latency.

        Args:
            latency_ms: Latency in milliseconds
        """
        with self._lock:
            self._inference_count += 1
            self._total_latency_ms += latency_ms
            self._min_latency_ms = min(self._min_latency_ms, latency_ms)
            self._max_latency_ms = max(self._max_latency_ms, latency_ms)

    def record_online_update(self) -> None:
        with self._lock:
            self._online_update_count += 1

    def get_metrics(self) -> Dict:
        """Get current metrics.

        Returns:
            Dictionary with metrics including:
            - inference_count: Total number of inference calls
            - average_latency_ms: Average latency in milliseconds
            - min_latency_ms: Minimum latency observed
            - max_latency_ms: Maximum latency observed
            - online_update_count: Ratings applied to the live model
        """
        with self._lock:
            avg_latency = (
                self._total_latency_ms / self._inference_count
                if self._inference_count > 0
                else 0.0
            )

            return {
                "inference_count": self._inference_count,
                "average_latency_ms": round(avg_latency, 2),
                "min_latency_ms": round(self._min_latency_ms, 2) if self._min_latency_ms != float('inf') else 0.0,
                "max_latency_ms": round(self._max_latency_ms, 2),
                "online_update_count": self._online_update_count,
            }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._inference_count = 0
            self._online_update_count = 0
            self._total_latency_ms = 0.0
            self._min_latency_ms = float('inf')
            self._max_latency_ms = 0.0
