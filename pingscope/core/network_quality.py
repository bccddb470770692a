"""
PingScope - Network Quality
Turns the raw statistics into a verdict: a 0-100 quality score with a
label, a stable / unstable flag, and one line of advice.
"""

from typing import Optional

from pingscope.core.ping_stats import ErrorCounts, round_half_up

# Weights of the composite quality score
WEIGHT_SUCCESS_RATE = 0.4
WEIGHT_RESPONSE_TIME = 0.3
WEIGHT_JITTER = 0.2
WEIGHT_CONSISTENCY = 0.1

# Stability limits
MAX_STABLE_LOSS_PCT = 5.0
MIN_STABLE_CONSISTENCY = 60.0
MAX_STABLE_JITTER_MS = 100.0

RECOMMENDATION_EXCELLENT = "Excellent network performance. No action required."
RECOMMENDATION_GOOD = "Good network performance with minor optimization opportunities."
RECOMMENDATION_GOOD_UNSTABLE = (
    "Network performance is good but shows some instability. Monitor for patterns."
)
RECOMMENDATION_UNREACHABLE = (
    "High unreachable host errors detected. Check routing and firewall configurations."
)
RECOMMENDATION_TIMEOUTS = (
    "Frequent timeouts detected. Investigate network congestion and connection stability."
)
RECOMMENDATION_GENERIC = (
    "Network performance issues detected. Consider checking connection quality "
    "and network infrastructure."
)


# ── Quality Score ────────────────────────────────────────────────────────────

def calculate_network_quality(success_rate: float, avg_time: Optional[float],
                              jitter: Optional[float], consistency: float) -> float:
    """Weighted composite of success rate, latency, jitter and consistency."""
    # 1000ms average scores 0
    if avg_time is not None:
        time_score = max(0.0, 100 - min(avg_time / 10, 100))
    else:
        time_score = 0.0

    # 50ms jitter scores 0
    if jitter is not None:
        jitter_score = max(0.0, 100 - min(jitter * 2, 100))
    else:
        jitter_score = 100.0

    score = (
        success_rate * WEIGHT_SUCCESS_RATE
        + time_score * WEIGHT_RESPONSE_TIME
        + jitter_score * WEIGHT_JITTER
        + consistency * WEIGHT_CONSISTENCY
    )
    return round_half_up(score)


def network_quality_text(score: float) -> str:
    if score >= 90:
        return "Excellent"
    elif score >= 75:
        return "Good"
    elif score >= 60:
        return "Fair"
    elif score >= 40:
        return "Poor"
    else:
        return "Critical"


# ── Stability ────────────────────────────────────────────────────────────────

def is_network_stable(packet_loss: float, consistency: float, jitter: Optional[float],
                      longest_failure_streak: int, total_packets: int) -> bool:
    """
    Stable means all of:
      - packet loss at most 5%
      - consistency of at least 60, or jitter of at most 100ms
        (unknown jitter does not count as low jitter)
      - no failure run longer than max(2, 10% of the packets)
    """
    low_loss = packet_loss <= MAX_STABLE_LOSS_PCT
    smooth = consistency >= MIN_STABLE_CONSISTENCY or (
        jitter is not None and jitter <= MAX_STABLE_JITTER_MS)
    short_outages = longest_failure_streak <= max(2, total_packets * 0.1)
    return low_loss and smooth and short_outages


# ── Recommendation ───────────────────────────────────────────────────────────

def generate_recommendation(quality_score: float, is_stable: bool,
                            errors: ErrorCounts) -> str:
    """Pick the advice line for a result. First matching rule wins."""
    if quality_score >= 90 and is_stable:
        return RECOMMENDATION_EXCELLENT

    if quality_score >= 70:
        return RECOMMENDATION_GOOD if is_stable else RECOMMENDATION_GOOD_UNSTABLE

    if errors.unreachable > errors.timeouts:
        return RECOMMENDATION_UNREACHABLE

    if errors.timeouts > 0:
        return RECOMMENDATION_TIMEOUTS

    return RECOMMENDATION_GENERIC
