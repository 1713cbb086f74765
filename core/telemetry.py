"""Telemetry module for tracking poll and lookup performance with PostHog."""

import logging
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

from posthog import Posthog

logger = logging.getLogger(__name__)

DISTINCT_ID = "playlist-tracker-service"


@dataclass
class StepResult:
    """Result of a tracked step."""

    duration_ms: float
    success: bool = True
    error_type: str | None = None


@dataclass
class PollTelemetry:
    """Tracks performance metrics for a single poll cycle."""

    steps: dict[str, StepResult] = field(default_factory=dict)
    upstream_calls: dict[str, int] = field(
        default_factory=lambda: {"archive": 0, "stream": 0}
    )
    start_time: float = field(default_factory=time.perf_counter)

    @contextmanager
    def track_step(self, step_name: str):
        """Context manager to time a step.

        Args:
            step_name: Name of the step being tracked

        Yields:
            None
        """
        step_start = time.perf_counter()
        error_type = None

        try:
            yield
        except BaseException as e:
            error_type = type(e).__name__
            raise
        finally:
            self.steps[step_name] = StepResult(
                duration_ms=(time.perf_counter() - step_start) * 1000,
                success=error_type is None,
                error_type=error_type,
            )

    def record_upstream_call(self, upstream: str) -> None:
        """Increment the call counter for an upstream service.

        Args:
            upstream: Name of the upstream ("archive", "stream")
        """
        if upstream in self.upstream_calls:
            self.upstream_calls[upstream] += 1
        else:
            logger.warning(f"Unknown upstream for call tracking: {upstream}")

    def get_total_duration_ms(self) -> float:
        """Get total elapsed time since telemetry was created."""
        return (time.perf_counter() - self.start_time) * 1000

    def get_step_timings(self) -> dict[str, float]:
        """Get timing for each step in milliseconds."""
        return {f"{name}_ms": step.duration_ms for name, step in self.steps.items()}

    def send_to_posthog(
        self,
        posthog_client: Posthog,
        extra_properties: dict[str, Any] | None = None,
    ) -> None:
        """Send all telemetry events to PostHog.

        Args:
            posthog_client: PostHog client instance
            extra_properties: Additional properties to include in the completed event
        """
        extra_properties = extra_properties or {}

        for step_name, step_result in self.steps.items():
            posthog_client.capture(
                distinct_id=DISTINCT_ID,
                event=f"poll_{step_name}",
                properties={
                    "step": step_name,
                    "duration_ms": round(step_result.duration_ms, 2),
                    "success": step_result.success,
                    "error_type": step_result.error_type,
                },
            )

        posthog_client.capture(
            distinct_id=DISTINCT_ID,
            event="poll_completed",
            properties={
                "total_duration_ms": round(self.get_total_duration_ms(), 2),
                "steps": self.get_step_timings(),
                "upstream_calls": self.upstream_calls.copy(),
                **extra_properties,
            },
        )

        logger.debug(
            f"Sent telemetry: {len(self.steps)} steps, total {self.get_total_duration_ms():.1f}ms"
        )


# ---------------------------------------------------------------------------
# Per-request artwork lookup stats via ContextVar
# ---------------------------------------------------------------------------

_lookup_stats_var: ContextVar[dict] = ContextVar("lookup_stats")


def init_lookup_stats() -> None:
    """Initialize artwork lookup stats for the current request context."""
    _lookup_stats_var.set(
        {
            "memory_hits": 0,
            "api_calls": 0,
            "api_time_ms": 0.0,
        }
    )


def record_memory_cache_hit() -> None:
    """Record an in-memory TTL cache hit in the current request context."""
    stats = _lookup_stats_var.get(None)
    if stats is not None:
        stats["memory_hits"] += 1


def record_artwork_api_call(ms: float) -> None:
    """Record one artwork provider call and its duration in the current request context."""
    stats = _lookup_stats_var.get(None)
    if stats is not None:
        stats["api_calls"] += 1
        stats["api_time_ms"] += ms


def get_lookup_stats() -> dict | None:
    """Get lookup stats for the current request context, or None if not initialized."""
    return _lookup_stats_var.get(None)
