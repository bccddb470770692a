"""
PingScope - Formatting
Human-readable text for response times, durations, live entries and the
end-of-session report.
"""

from typing import List, Optional

from pingscope.core.line_parser import Entry


def format_time_human(time_ms: Optional[float]) -> Optional[str]:
    """Format a response time with a rough performance rating."""
    if time_ms is None:
        return None

    if time_ms < 1:
        return f"{time_ms * 1000:.0f} microseconds (instant)"
    elif time_ms < 10:
        return f"{time_ms:.2f} ms (excellent)"
    elif time_ms < 50:
        return f"{time_ms:.2f} ms (very good)"
    elif time_ms < 100:
        return f"{time_ms:.2f} ms (good)"
    elif time_ms < 200:
        return f"{time_ms:.2f} ms (acceptable)"
    elif time_ms < 500:
        return f"{time_ms:.2f} ms (slow)"
    elif time_ms < 1000:
        return f"{time_ms:.2f} ms (very slow)"
    elif time_ms < 2000:
        return f"{time_ms / 1000:.2f} seconds (poor)"
    else:
        return f"{time_ms / 1000:.2f} seconds (critical)"


def format_duration(seconds: float) -> str:
    """Format elapsed seconds as "1h 2m 3s", "2m 3s" or "3s"."""
    total = int(max(0, seconds))
    hours = total // 3600
    minutes = (total % 3600) // 60
    secs = total % 60

    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def _fmt_ms(value: Optional[float]) -> str:
    return f"{value:.2f} ms" if value is not None else "n/a"


def format_entry(entry: Entry) -> str:
    """One line for the live feed."""
    seq = f"#{entry.sequence_number}" if entry.sequence_number is not None else "#-"
    source = f" from {entry.source_ip}" if entry.source_ip else ""

    if entry.is_success:
        ttl = f" ttl={entry.ttl}" if entry.ttl is not None else ""
        return f"  OK    {seq:<7} {entry.response_time:.2f} ms{ttl}{source}"

    return f"  FAIL  {seq:<7} {entry.error_kind.value}{source}"


def build_report_lines(result, host: str = "", duration: str = "",
                       recent_entries: Optional[List[Entry]] = None) -> List[str]:
    """
    Plain-text summary of an AnalysisResult.

    Args:
        result: AnalysisResult from analyze_ping_output
        host: Target that was probed (shown in the heading if given)
        duration: Pre-formatted session length
        recent_entries: Tail of the entry list to echo at the end
    """
    title = f"Ping report for {host}" if host else "Ping report"
    lines = [title, "=" * len(title)]
    if duration:
        lines.append(f"Duration:        {duration}")

    lines += [
        f"Packets:         {result.total_packets} total, "
        f"{result.successful_packets} ok, {result.failed_packets} failed",
        f"Success rate:    {result.success_rate:.1f}%",
        f"Packet loss:     {result.packet_loss:.1f}%  "
        f"(timeouts {result.timeout_rate:.1f}%, unreachable {result.unreachable_rate:.1f}%)",
        "",
        "Response times",
        f"  min:           {result.min_success_time_human or 'n/a'}",
        f"  max:           {result.max_success_time_human or 'n/a'}",
        f"  avg:           {_fmt_ms(result.avg_success_time)}",
        f"  median:        {_fmt_ms(result.median_success_time)}",
        f"  std dev:       {_fmt_ms(result.response_time_std_dev)}",
        f"  jitter:        {_fmt_ms(result.jitter)}",
        f"  consistency:   {result.consistency:.1f}/100",
    ]

    if result.time_distribution:
        lines.append("")
        lines.append("Distribution")
        for band, count in result.time_distribution.items():
            lines.append(f"  {band:<12} {count}")

    streak = result.current_streak
    lines += [
        "",
        f"Streaks:         longest ok {result.longest_success_streak}, "
        f"longest fail {result.longest_failure_streak}, "
        f"current {streak.count} {streak.type}",
        f"Errors:          {result.timeouts} timeout, {result.unreachable_hosts} unreachable, "
        f"{result.other_errors} other",
        "",
        f"Quality:         {result.network_quality_score:.2f}/100 ({result.network_quality_text})",
        f"Stable:          {'yes' if result.is_stable else 'no'}",
        f"Recommendation:  {result.recommended_action}",
    ]

    if recent_entries:
        lines.append("")
        lines.append(f"Last {len(recent_entries)} entries")
        lines.extend(format_entry(e) for e in recent_entries)

    return lines
