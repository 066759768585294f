"""Lightweight in-process metrics for the chat action pipeline.

Metrics are best-effort in multi-worker environments (each worker has its own state).
"""

import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any

MAX_LATENCY_SAMPLES = 1000


@dataclass
class MetricsCollector:
    """Thread-safe in-memory counters and latency samples."""

    # Turn outcomes by branch (new_request, confirm, decline, reprompt, destructive_gate, error)
    turn_counts: dict[str, int] = field(default_factory=dict)

    # Confirmation detector verdicts (confirm, decline, none)
    confirmation_verdicts: dict[str, int] = field(default_factory=dict)

    # Executed actions by "<action_type>:<ok|failed>"
    action_outcomes: dict[str, int] = field(default_factory=dict)

    # Most recent language-model call latencies (in milliseconds)
    llm_latencies: deque[float] = field(
        default_factory=lambda: deque(maxlen=MAX_LATENCY_SAMPLES)
    )

    _lock: threading.Lock = field(default_factory=threading.Lock)

    def record_turn(self, branch: str) -> None:
        with self._lock:
            self.turn_counts[branch] = self.turn_counts.get(branch, 0) + 1

    def record_confirmation(self, verdict: str) -> None:
        """Record a confirmation detector verdict.

        Args:
            verdict: confirm, decline or none
        """
        with self._lock:
            self.confirmation_verdicts[verdict] = self.confirmation_verdicts.get(verdict, 0) + 1

    def record_action(self, action_type: str, success: bool) -> None:
        key = f"{action_type}:{'ok' if success else 'failed'}"
        with self._lock:
            self.action_outcomes[key] = self.action_outcomes.get(key, 0) + 1

    def record_llm_latency(self, latency_ms: float) -> None:
        with self._lock:
            self.llm_latencies.append(latency_ms)

    def _calculate_percentile(self, sorted_values: list[float], percentile: float) -> float | None:
        """Calculate a percentile from sorted values.

        Args:
            sorted_values: List of values sorted in ascending order
            percentile: Percentile to calculate (0.0 to 1.0)

        Returns:
            The percentile value, or None if list is empty
        """
        if not sorted_values:
            return None

        n = len(sorted_values)
        idx = int(n * percentile)
        return sorted_values[min(idx, n - 1)]

    def get_snapshot(self) -> dict[str, Any]:
        """Get a snapshot of current metrics, including latency percentiles."""
        with self._lock:
            turn_counts = dict(self.turn_counts)
            confirmation_verdicts = dict(self.confirmation_verdicts)
            action_outcomes = dict(self.action_outcomes)
            latencies = list(self.llm_latencies)

        sorted_latencies = sorted(latencies)
        return {
            "turn_counts": turn_counts,
            "confirmation_verdicts": confirmation_verdicts,
            "action_outcomes": action_outcomes,
            "llm_latency_ms": {
                "p50": self._calculate_percentile(sorted_latencies, 0.5),
                "p95": self._calculate_percentile(sorted_latencies, 0.95),
                "count": len(sorted_latencies),
            },
        }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self.turn_counts.clear()
            self.confirmation_verdicts.clear()
            self.action_outcomes.clear()
            self.llm_latencies.clear()


# Global metrics collector instance
_metrics_collector: MetricsCollector | None = None
_metrics_lock = threading.Lock()


def get_metrics_collector() -> MetricsCollector:
    """Get or create the global metrics collector instance."""
    global _metrics_collector
    with _metrics_lock:
        if _metrics_collector is None:
            _metrics_collector = MetricsCollector()
        return _metrics_collector
