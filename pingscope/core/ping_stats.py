"""
PingScope - Ping Statistics
Building blocks for the analyzer: error tallies, streaks, latency
statistics, jitter, consistency and the latency histogram.

All functions are pure and work on plain sequences, so they serve the
live session as well as saved output.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

from pingscope.core.line_parser import Entry, ErrorKind


# ── Data Structures ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ErrorCounts:
    timeouts: int = 0
    unreachable: int = 0
    other: int = 0


@dataclass(frozen=True)
class CurrentStreak:
    """The run of same-outcome entries that the output ends with."""
    type: str = "success"      # "success" or "failure"
    count: int = 0

    def to_dict(self) -> dict:
        return {"type": self.type, "count": self.count}


@dataclass(frozen=True)
class StreakStats:
    longest_success: int = 0
    longest_failure: int = 0
    current: CurrentStreak = field(default_factory=CurrentStreak)


@dataclass(frozen=True)
class TimeStatistics:
    """Latency summary in ms. Every field is None when nothing succeeded."""
    min: Optional[float] = None
    max: Optional[float] = None
    avg: Optional[float] = None
    median: Optional[float] = None
    std_dev: Optional[float] = None


# Upper bound (inclusive) of each band; the last band catches the rest
TIME_BANDS = [
    ("0-50ms", 50),
    ("51-100ms", 100),
    ("101-200ms", 200),
    ("201-500ms", 500),
    ("500ms+", None),
]


def round_half_up(value: float, places: int = 2) -> float:
    """Round with halves going up (12.125 -> 12.13), unlike round()'s half-to-even."""
    scale = 10 ** places
    return math.floor(value * scale + 0.5) / scale


# ── Errors ───────────────────────────────────────────────────────────────────

def categorize_errors(entries: Sequence[Entry]) -> ErrorCounts:
    """Count failed entries by kind."""
    timeouts = unreachable = other = 0
    for entry in entries:
        if entry.is_success:
            continue
        if entry.error_kind == ErrorKind.TIMEOUT:
            timeouts += 1
        elif entry.error_kind == ErrorKind.UNREACHABLE:
            unreachable += 1
        else:
            other += 1
    return ErrorCounts(timeouts=timeouts, unreachable=unreachable, other=other)


# ── Streaks ──────────────────────────────────────────────────────────────────

def analyze_streaks(entries: Sequence[Entry]) -> StreakStats:
    """Longest success/failure runs plus the run the output currently ends in."""
    if not entries:
        return StreakStats()

    longest_success = longest_failure = 0
    success_run = failure_run = 0

    for entry in entries:
        if entry.is_success:
            success_run += 1
            failure_run = 0
            longest_success = max(longest_success, success_run)
        else:
            failure_run += 1
            success_run = 0
            longest_failure = max(longest_failure, failure_run)

    if entries[-1].is_success:
        current = CurrentStreak("success", success_run)
    else:
        current = CurrentStreak("failure", failure_run)

    return StreakStats(longest_success, longest_failure, current)


# ── Latency ──────────────────────────────────────────────────────────────────

def calculate_time_statistics(times: Sequence[float]) -> TimeStatistics:
    """Min / max / mean / median / population standard deviation."""
    if not times:
        return TimeStatistics()

    sorted_times = sorted(times)
    count = len(times)
    avg = sum(times) / count

    mid = count // 2
    if count % 2 == 0:
        median = (sorted_times[mid - 1] + sorted_times[mid]) / 2
    else:
        median = sorted_times[mid]

    variance = sum((t - avg) ** 2 for t in times) / count

    return TimeStatistics(
        min=sorted_times[0],
        max=sorted_times[-1],
        avg=avg,
        median=median,
        std_dev=variance ** 0.5,
    )


def calculate_jitter(times: Sequence[float]) -> Optional[float]:
    """
    Mean absolute difference between consecutive response times, in the
    order they arrived. None with fewer than two replies.

    This is not the RFC 3550 interarrival jitter; the quality score
    weights are tuned to this definition.
    """
    if len(times) < 2:
        return None

    differences = [abs(times[i] - times[i - 1]) for i in range(1, len(times))]
    return sum(differences) / len(differences)


def calculate_consistency(times: Sequence[float], jitter_threshold: float = 50.0) -> float:
    """0-100 stability score: 100 with no measurable jitter, 0 at or past the threshold."""
    jitter = calculate_jitter(times)
    if jitter is None:
        return 100.0

    score = max(0.0, 100 - (jitter / jitter_threshold) * 100)
    return round_half_up(score)


def create_time_distribution(times: Sequence[float]) -> Dict[str, int]:
    """Histogram of response times over TIME_BANDS, every band present."""
    distribution = {label: 0 for label, _ in TIME_BANDS}
    for t in times:
        for label, upper in TIME_BANDS:
            if upper is None or t <= upper:
                distribution[label] += 1
                break
    return distribution
