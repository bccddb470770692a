import dataclasses

import pytest

from conftest import make_ping_output
from pingscope.core.network_quality import (
    RECOMMENDATION_EXCELLENT,
    RECOMMENDATION_GENERIC,
    RECOMMENDATION_TIMEOUTS,
)
from pingscope.core.ping_analyzer import AnalysisOptions, analyze_ping_output
from pingscope.core.ping_stats import CurrentStreak


THREE_REPLIES = "\n".join([
    "64 bytes from 8.8.8.8: icmp_seq=1 ttl=117 time=20ms",
    "64 bytes from 8.8.8.8: icmp_seq=2 ttl=117 time=25ms",
    "64 bytes from 8.8.8.8: icmp_seq=3 ttl=117 time=30ms",
])


class TestScenarios:
    def test_all_replies(self):
        result = analyze_ping_output(THREE_REPLIES)
        assert result.total_packets == 3
        assert result.successful_packets == 3
        assert result.avg_success_time == 25
        assert result.median_success_time == 25
        assert result.min_success_time == 20
        assert result.max_success_time == 30
        assert result.min_success_time_human == "20.00 ms (very good)"
        assert result.jitter == 5
        assert result.consistency == 90
        assert result.network_quality_score == pytest.approx(96.25)
        assert result.network_quality_text == "Excellent"
        assert result.is_stable
        assert result.recommended_action == RECOMMENDATION_EXCELLENT

    def test_all_timeouts(self):
        result = analyze_ping_output(
            "Request timeout for icmp_seq 1\nRequest timeout for icmp_seq 2")
        assert result.total_packets == 2
        assert result.successful_packets == 0
        assert result.failure_rate == 100
        assert result.packet_loss == 100
        assert result.timeouts == 2
        assert result.timeout_rate == 100
        assert result.sequence_numbers == (1, 2)
        assert result.min_success_time is None
        assert result.min_success_time_human is None
        assert result.jitter is None
        assert result.network_quality_score == 30
        assert not result.is_stable
        assert result.recommended_action == RECOMMENDATION_TIMEOUTS
        assert "timeouts" in result.recommended_action

    def test_alternating_outcomes(self):
        output = make_ping_output([
            {"success": True, "time": 10},
            {"error": "timeout"},
            {"success": True, "time": 12},
            {"error": "unreachable"},
        ])
        result = analyze_ping_output(output)
        assert result.longest_success_streak == 1
        assert result.longest_failure_streak == 1
        assert result.current_streak == CurrentStreak("failure", 1)
        assert result.timeouts == 1
        assert result.unreachable_hosts == 1
        assert result.unreachable_rate == 25
        # The unreachable line has no sequence number
        assert result.sequence_numbers == (1, 2, 3)

    def test_distribution(self):
        output = make_ping_output([{"success": True, "time": t} for t in (5, 15, 25, 55, 150)])
        result = analyze_ping_output(output)
        assert list(result.time_distribution) == [
            "0-50ms", "51-100ms", "101-200ms", "201-500ms", "500ms+"]
        assert dict(result.time_distribution) == {
            "0-50ms": 3,
            "51-100ms": 1,
            "101-200ms": 1,
            "201-500ms": 0,
            "500ms+": 0,
        }

    def test_empty_input(self):
        result = analyze_ping_output("")
        assert result.total_packets == 0
        assert result.response_times == ()
        assert result.sequence_numbers == ()
        assert dict(result.time_distribution) == {}
        assert (result.success_rate, result.failure_rate, result.timeout_rate,
                result.unreachable_rate, result.packet_loss) == (0, 0, 0, 0, 0)
        assert result.consistency == 100
        assert result.network_quality_score == 30
        assert result.network_quality_text == "Critical"
        assert result.is_stable
        assert result.recommended_action == RECOMMENDATION_GENERIC

    def test_noise_only_matches_empty(self):
        noise = "PING 8.8.8.8 (8.8.8.8): 56 data bytes\n^C\n--- 8.8.8.8 ping statistics ---"
        assert analyze_ping_output(noise).to_dict() == analyze_ping_output("").to_dict()

    def test_consistency_rounds_halves_up(self):
        output = make_ping_output([{"success": True, "time": 10},
                                   {"success": True, "time": 53.9375}])
        result = analyze_ping_output(output)
        assert result.jitter == 43.9375
        assert result.consistency == 12.13

    def test_failures_only_still_lists_bands(self):
        result = analyze_ping_output("Request timeout for icmp_seq 1")
        assert sum(result.time_distribution.values()) == 0
        assert len(result.time_distribution) == 5


class TestPlatformOutput:
    def test_linux_session(self, linux_session_output):
        result = analyze_ping_output(linux_session_output)
        assert result.total_packets == 4
        assert result.response_times == (12.4, 14.1, 13.0)
        assert result.packet_loss == 25
        assert result.current_streak == CurrentStreak("success", 1)

    def test_windows_session(self, windows_session_output):
        result = analyze_ping_output(windows_session_output)
        assert result.total_packets == 3
        assert result.min_success_time == 1
        assert result.sequence_numbers == ()
        assert result.success_rate == 100


class TestInvariants:
    @pytest.mark.parametrize("responses", [
        [{"success": True, "time": 40}] * 10,
        [{"error": "timeout"}] * 3 + [{"success": True, "time": 300}] * 2,
        [{"success": True, "time": 8}, {"error": "unreachable"}, {"error": "unreachable"},
         {"error": "timeout"}, {"success": True, "time": 700}],
    ])
    def test_counts_add_up(self, responses):
        result = analyze_ping_output(make_ping_output(responses))
        assert result.successful_packets + result.failed_packets == result.total_packets
        assert (result.timeouts + result.unreachable_hosts + result.other_errors
                == result.failed_packets)
        assert len(result.response_times) == result.successful_packets
        assert sum(result.time_distribution.values()) == result.successful_packets
        assert result.success_rate + result.failure_rate == pytest.approx(100)
        assert result.packet_loss == result.failure_rate
        assert 0 <= result.consistency <= 100
        assert 0 <= result.network_quality_score <= 100
        assert result.longest_failure_streak >= (
            result.current_streak.count if result.current_streak.type == "failure" else 0)

    def test_idempotent(self, linux_session_output):
        first = analyze_ping_output(linux_session_output)
        second = analyze_ping_output(linux_session_output)
        assert first.to_dict() == second.to_dict()

    def test_growing_buffer(self):
        responses = [{"success": True, "time": 20}, {"error": "timeout"}]
        before = analyze_ping_output(make_ping_output(responses[:1]))
        after = analyze_ping_output(make_ping_output(responses))
        assert before.total_packets == 1
        assert after.total_packets == 2
        assert after.current_streak == CurrentStreak("failure", 1)


class TestImmutability:
    def test_result_is_frozen(self):
        result = analyze_ping_output(THREE_REPLIES)
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.total_packets = 10

    def test_series_cannot_be_changed(self):
        result = analyze_ping_output(THREE_REPLIES)
        assert isinstance(result.response_times, tuple)
        assert isinstance(result.sequence_numbers, tuple)
        with pytest.raises(TypeError):
            result.time_distribution["0-50ms"] = 99

    def test_to_dict_is_a_copy(self):
        result = analyze_ping_output(THREE_REPLIES)
        data = result.to_dict()
        data["responseTimes"].append(999)
        data["timeDistribution"]["0-50ms"] = 0
        assert result.response_times == (20, 25, 30)
        assert result.time_distribution["0-50ms"] == 3


class TestOptions:
    def test_jitter_threshold(self):
        result = analyze_ping_output(THREE_REPLIES, AnalysisOptions(jitter_threshold_ms=10))
        assert result.consistency == 50

    def test_reserved_options_change_nothing(self):
        default = analyze_ping_output(THREE_REPLIES)
        tuned = analyze_ping_output(
            THREE_REPLIES,
            AnalysisOptions(timeout_threshold_ms=5, stability_threshold_pct=10))
        assert default.to_dict() == tuned.to_dict()

    @pytest.mark.parametrize("kwargs", [
        {"jitter_threshold_ms": 0},
        {"timeout_threshold_ms": -1},
        {"stability_threshold_pct": 0},
    ])
    def test_rejects_non_positive(self, kwargs):
        with pytest.raises(ValueError):
            AnalysisOptions(**kwargs)

    def test_to_dict(self):
        assert AnalysisOptions().to_dict() == {
            "timeoutThreshold": 1000.0,
            "jitterThreshold": 50.0,
            "stabilityThreshold": 95.0,
        }


def test_result_to_dict_keys():
    data = analyze_ping_output(THREE_REPLIES).to_dict()
    assert data["currentStreak"] == {"type": "success", "count": 3}
    assert data["timeDistribution"]["0-50ms"] == 3
    assert {"totalPackets", "packetLoss", "networkQualityScore",
            "recommendedAction"} <= set(data)
