"""
PingScope - Ping Analyzer
Turns the text a `ping` run has printed so far into one immutable
AnalysisResult: packet accounting, latency statistics, jitter,
consistency, streaks, error mix, a quality score and a recommendation.

Flow:
  raw text -> parse_ping_output -> entries
  entries  -> errors / streaks / latency list
  latency  -> time statistics / jitter / consistency / distribution
  all      -> quality score, stability, recommendation

The analysis is a pure function of its input. On a growing buffer, call
it again on the whole buffer; there is no incremental mode.
"""

import logging
from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from pingscope.core.formatting import format_time_human
from pingscope.core.line_parser import parse_ping_output
from pingscope.core.network_quality import (
    calculate_network_quality,
    generate_recommendation,
    is_network_stable,
    network_quality_text,
)
from pingscope.core.ping_stats import (
    CurrentStreak,
    analyze_streaks,
    calculate_consistency,
    calculate_jitter,
    calculate_time_statistics,
    categorize_errors,
    create_time_distribution,
)

logger = logging.getLogger(__name__)


# ── Data Structures ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AnalysisOptions:
    """Per-call analysis settings."""
    timeout_threshold_ms: float = 1000.0    # reserved, not used by any metric yet
    jitter_threshold_ms: float = 50.0       # jitter at which consistency hits 0
    stability_threshold_pct: float = 95.0   # reserved, not used by any metric yet

    def __post_init__(self):
        for f in fields(self):
            if getattr(self, f.name) <= 0:
                raise ValueError(f"{f.name} must be positive, got {getattr(self, f.name)}")

    def to_dict(self) -> dict:
        return {
            "timeoutThreshold": self.timeout_threshold_ms,
            "jitterThreshold": self.jitter_threshold_ms,
            "stabilityThreshold": self.stability_threshold_pct,
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Everything derived from one ping output. Read-only."""
    # Packets
    total_packets: int
    successful_packets: int
    failed_packets: int

    # Response times (ms)
    min_success_time: Optional[float]
    min_success_time_human: Optional[str]
    max_success_time: Optional[float]
    max_success_time_human: Optional[str]
    avg_success_time: Optional[float]
    median_success_time: Optional[float]
    response_time_std_dev: Optional[float]

    # Rates (0-100)
    success_rate: float
    failure_rate: float
    timeout_rate: float
    unreachable_rate: float
    packet_loss: float

    # Quality metrics
    jitter: Optional[float]
    consistency: float

    # Streaks
    longest_success_streak: int
    longest_failure_streak: int
    current_streak: CurrentStreak

    # Errors
    timeouts: int
    unreachable_hosts: int
    other_errors: int

    # Raw series
    response_times: Tuple[float, ...]
    sequence_numbers: Tuple[int, ...]
    time_distribution: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))

    # Verdict
    network_quality_score: float = 0.0
    network_quality_text: str = "Critical"
    is_stable: bool = False
    recommended_action: str = ""

    def to_dict(self) -> dict:
        """JSON-friendly copy with the field names used by exports."""
        return {
            "totalPackets": self.total_packets,
            "successfulPackets": self.successful_packets,
            "failedPackets": self.failed_packets,
            "minSuccessTime": self.min_success_time,
            "minSuccessTimeHuman": self.min_success_time_human,
            "maxSuccessTime": self.max_success_time,
            "maxSuccessTimeHuman": self.max_success_time_human,
            "avgSuccessTime": self.avg_success_time,
            "medianSuccessTime": self.median_success_time,
            "responseTimeStdDev": self.response_time_std_dev,
            "successRate": self.success_rate,
            "failureRate": self.failure_rate,
            "timeoutRate": self.timeout_rate,
            "unreachableRate": self.unreachable_rate,
            "packetLoss": self.packet_loss,
            "jitter": self.jitter,
            "consistency": self.consistency,
            "longestSuccessStreak": self.longest_success_streak,
            "longestFailureStreak": self.longest_failure_streak,
            "currentStreak": self.current_streak.to_dict(),
            "timeouts": self.timeouts,
            "unreachableHosts": self.unreachable_hosts,
            "otherErrors": self.other_errors,
            "responseTimes": list(self.response_times),
            "sequenceNumbers": list(self.sequence_numbers),
            "timeDistribution": dict(self.time_distribution),
            "networkQualityScore": self.network_quality_score,
            "networkQualityText": self.network_quality_text,
            "isStable": self.is_stable,
            "recommendedAction": self.recommended_action,
        }


# ── Analyzer ─────────────────────────────────────────────────────────────────

def _rate(count: int, total: int) -> float:
    return (count / total) * 100 if total > 0 else 0.0


def analyze_ping_output(ping_output: str,
                        options: Optional[AnalysisOptions] = None) -> AnalysisResult:
    """
    Analyze ping output from any supported platform.

    Never raises on odd input: unknown lines are dropped, and empty
    text gives an all-zero result.

    Args:
        ping_output: Everything the ping process has printed so far
        options: Thresholds; defaults to AnalysisOptions()

    Returns:
        AnalysisResult
    """
    options = options or AnalysisOptions()
    entries = parse_ping_output(ping_output)

    response_times = tuple(
        e.response_time for e in entries if e.is_success and e.response_time is not None
    )
    sequence_numbers = tuple(
        e.sequence_number for e in entries if e.sequence_number is not None
    )

    total = len(entries)
    successful = len(response_times)
    failed = total - successful

    time_stats = calculate_time_statistics(response_times)
    errors = categorize_errors(entries)
    streaks = analyze_streaks(entries)

    jitter = calculate_jitter(response_times)
    consistency = calculate_consistency(response_times, options.jitter_threshold_ms)
    if total > 0:
        distribution = create_time_distribution(response_times)
    else:
        distribution = {}

    success_rate = _rate(successful, total)
    failure_rate = _rate(failed, total)

    quality_score = calculate_network_quality(success_rate, time_stats.avg, jitter, consistency)
    stable = is_network_stable(
        packet_loss=failure_rate,
        consistency=consistency,
        jitter=jitter,
        longest_failure_streak=streaks.longest_failure,
        total_packets=total,
    )

    logger.debug(f"Analyzed {total} entries: {successful} ok, {failed} failed, "
                 f"quality={quality_score}")

    return AnalysisResult(
        total_packets=total,
        successful_packets=successful,
        failed_packets=failed,
        min_success_time=time_stats.min,
        min_success_time_human=format_time_human(time_stats.min),
        max_success_time=time_stats.max,
        max_success_time_human=format_time_human(time_stats.max),
        avg_success_time=time_stats.avg,
        median_success_time=time_stats.median,
        response_time_std_dev=time_stats.std_dev,
        success_rate=success_rate,
        failure_rate=failure_rate,
        timeout_rate=_rate(errors.timeouts, total),
        unreachable_rate=_rate(errors.unreachable, total),
        packet_loss=failure_rate,
        jitter=jitter,
        consistency=consistency,
        longest_success_streak=streaks.longest_success,
        longest_failure_streak=streaks.longest_failure,
        current_streak=streaks.current,
        timeouts=errors.timeouts,
        unreachable_hosts=errors.unreachable,
        other_errors=errors.other,
        response_times=response_times,
        sequence_numbers=sequence_numbers,
        time_distribution=MappingProxyType(distribution),
        network_quality_score=quality_score,
        network_quality_text=network_quality_text(quality_score),
        is_stable=stable,
        recommended_action=generate_recommendation(quality_score, stable, errors),
    )
