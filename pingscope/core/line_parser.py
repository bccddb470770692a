"""
PingScope - Line Parser
Turns raw `ping` output text into structured entries.

Understands the common dialects:
  - Linux / macOS:  "64 bytes from 8.8.8.8: icmp_seq=1 ttl=117 time=20.1 ms"
  - Windows:        "Reply from 8.8.8.8: bytes=32 time<1ms TTL=64"
  - Timeouts:       "Request timeout for icmp_seq 5"
  - Unreachable:    "From 192.168.1.1 icmp_seq=3 Destination Host Unreachable"

Anything else (banners, summaries, hex dumps, ^C) is dropped silently.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Pattern, Tuple

logger = logging.getLogger(__name__)

NUMBER = r"\d*\.?\d+"


# ── Data Structures ──────────────────────────────────────────────────────────

class ErrorKind(Enum):
    """Why a probe failed."""
    TIMEOUT = "timeout"
    UNREACHABLE = "unreachable"
    OTHER = "other"


@dataclass(frozen=True)
class Entry:
    """One classified line of probe output: a reply or a failure."""
    sequence_number: Optional[int] = None
    response_time: Optional[float] = None   # ms, only on success
    is_success: bool = False
    error_kind: Optional[ErrorKind] = None  # None only on success
    ttl: Optional[int] = None
    source_ip: Optional[str] = None

    def __post_init__(self):
        if self.is_success:
            if self.response_time is None or self.error_kind is not None:
                raise ValueError("A successful entry needs a response time and no error kind")
        elif self.response_time is not None or self.error_kind is None:
            raise ValueError("A failed entry needs an error kind and no response time")

    @classmethod
    def success(cls, response_time: float, sequence_number: Optional[int] = None,
                ttl: Optional[int] = None, source_ip: Optional[str] = None) -> "Entry":
        return cls(sequence_number=sequence_number, response_time=response_time,
                   is_success=True, ttl=ttl, source_ip=source_ip)

    @classmethod
    def failure(cls, error_kind: ErrorKind, sequence_number: Optional[int] = None,
                source_ip: Optional[str] = None) -> "Entry":
        return cls(sequence_number=sequence_number, is_success=False,
                   error_kind=error_kind, source_ip=source_ip)

    def to_dict(self) -> dict:
        return {
            "sequenceNumber": self.sequence_number,
            "responseTime": self.response_time,
            "isSuccess": self.is_success,
            "errorType": self.error_kind.value if self.error_kind else None,
            "ttl": self.ttl,
            "sourceIp": self.source_ip,
        }


# ── Line Filters ─────────────────────────────────────────────────────────────

_LATENCY_TOKEN = re.compile(rf"time[=<:]\s*{NUMBER}\s*ms", re.IGNORECASE)

_SKIP_PATTERNS = [
    re.compile(r"^PING\s.*\s+data$|^PING\s.*\s+bytes$", re.IGNORECASE),  # startup banner
    re.compile(r"^---.*ping\s+statistics", re.IGNORECASE),
    re.compile(r"^\d+\s+packets\s+transmitted", re.IGNORECASE),
    re.compile(r"^round-trip", re.IGNORECASE),
    re.compile(r"^rtt", re.IGNORECASE),
    re.compile(r"^Vr\s+HL\s+TOS", re.IGNORECASE),  # IP header dump in unreachable replies
    re.compile(r"^\s*\d+\s+\d+\s+\d+\s+\d+"),       # hex dump rows
    re.compile(r"^\s*$"),
    re.compile(r"^\^C$"),
]


def is_non_ping_line(line: str) -> bool:
    """True if the line carries no probe data (headers, summaries, dumps)."""
    # Some dialects put the first reading on the banner line
    if _LATENCY_TOKEN.search(line):
        return False
    return any(pattern.search(line) for pattern in _SKIP_PATTERNS)


# ── Source IP ────────────────────────────────────────────────────────────────

_IP_IN_PARENS = re.compile(r"\(([\d.:a-f]+)\)", re.IGNORECASE)
_IPV4_AFTER_FROM = re.compile(r"(?:from|From)\s+(\d+(?:\.\d+)+)")
_IPV6_AFTER_FROM = re.compile(r"(?:from|From)\s+([\da-f:]+:[\da-f:]*)", re.IGNORECASE)


def extract_source_ip(line: str) -> Optional[str]:
    """
    Pull the responding address out of a line.

    Tries, in order: an address in parentheses (the resolved-name form),
    an IPv4 literal after "from", then an IPv6 literal after "from".
    """
    match = _IP_IN_PARENS.search(line)
    if match:
        return match.group(1)

    match = _IPV4_AFTER_FROM.search(line)
    if match:
        return match.group(1)

    match = _IPV6_AFTER_FROM.search(line)
    if match:
        address = match.group(1)
        # "From fe80::1: icmp_seq=..." picks up the separator colon
        if address.endswith(":") and not address.endswith("::"):
            address = address[:-1]
        return address

    return None


# ── Reply Dialects ───────────────────────────────────────────────────────────

_TIMEOUT_SEQ = re.compile(r"icmp_seq[=\s]+(\d+)", re.IGNORECASE)

_UNIX_REPLY = re.compile(
    rf"(\d+)\s+bytes\s+from\s+([\d.:a-f]+):\s+icmp_seq[=:](\d+)\s+ttl[=:](\d+)\s+time[=:]\s*({NUMBER})\s*ms",
    re.IGNORECASE,
)
_WINDOWS_REPLY = re.compile(
    rf"Reply\s+from\s+([\d.]+):\s+bytes=\d+\s+time[=<]({NUMBER})ms\s+TTL=(\d+)",
    re.IGNORECASE,
)
_ANY_TIME = re.compile(rf"time[=<:]?\s*({NUMBER})\s*ms", re.IGNORECASE)
_ANY_TTL = re.compile(r"ttl[=:]\s*(\d+)", re.IGNORECASE)
_ANY_SEQ = re.compile(r"(?:icmp_)?seq[=:]\s*(\d+)", re.IGNORECASE)


def _from_unix_reply(match, line: str) -> Entry:
    return Entry.success(
        response_time=float(match.group(5)),
        sequence_number=int(match.group(3)),
        ttl=int(match.group(4)),
        source_ip=match.group(2),
    )


def _from_windows_reply(match, line: str) -> Entry:
    # "time<1ms" is recorded as the bound itself
    return Entry.success(
        response_time=float(match.group(2)),
        ttl=int(match.group(3)),
        source_ip=match.group(1),
    )


def _from_any_time(match, line: str) -> Entry:
    ttl_match = _ANY_TTL.search(line)
    seq_match = _ANY_SEQ.search(line)
    return Entry.success(
        response_time=float(match.group(1)),
        sequence_number=int(seq_match.group(1)) if seq_match else None,
        ttl=int(ttl_match.group(1)) if ttl_match else None,
        source_ip=extract_source_ip(line),
    )


# Tried in order, first match wins. A Linux reply also satisfies the
# fallback, so the order matters.
REPLY_DIALECTS: List[Tuple[str, Pattern, Callable]] = [
    ("unix", _UNIX_REPLY, _from_unix_reply),
    ("windows", _WINDOWS_REPLY, _from_windows_reply),
    ("fallback", _ANY_TIME, _from_any_time),
]


# ── Parsing ──────────────────────────────────────────────────────────────────

def parse_ping_line(line: str) -> Optional[Entry]:
    """Classify a single line. Returns None when it is not a probe result."""
    if is_non_ping_line(line):
        return None

    lowered = line.lower()

    if "timeout" in lowered:
        seq_match = _TIMEOUT_SEQ.search(line)
        return Entry.failure(
            ErrorKind.TIMEOUT,
            sequence_number=int(seq_match.group(1)) if seq_match else None,
        )

    if "unreachable" in lowered:
        return Entry.failure(ErrorKind.UNREACHABLE, source_ip=extract_source_ip(line))

    for _name, pattern, build in REPLY_DIALECTS:
        match = pattern.search(line)
        if match:
            return build(match, line)

    return None


def parse_ping_output(output: str) -> List[Entry]:
    """Split a blob of ping output into lines and keep the ones that parse."""
    lines = [line.strip() for line in output.splitlines()]
    entries = []
    for line in lines:
        if not line:
            continue
        entry = parse_ping_line(line)
        if entry:
            entries.append(entry)

    logger.debug(f"Parsed {len(entries)} entries from {len(lines)} lines")
    return entries
