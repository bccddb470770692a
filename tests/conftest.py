import pytest

from pingscope.core.line_parser import Entry, ErrorKind


def make_ping_output(responses):
    """
    Build Linux-style ping text from a list of dicts:
    {"success": True, "time": 20}, {"error": "timeout"}, {"error": "unreachable"}
    """
    lines = []
    for index, response in enumerate(responses, 1):
        seq = response.get("seq", index)
        if response.get("success"):
            time_ms = response.get("time", 25)
            lines.append(f"64 bytes from 8.8.8.8: icmp_seq={seq} ttl=117 time={time_ms}ms")
        elif response.get("error") == "timeout":
            lines.append(f"Request timeout for icmp_seq {seq}")
        elif response.get("error") == "unreachable":
            lines.append("From 8.8.8.8: Destination Host Unreachable")
    return "\n".join(lines)


class FakeProcess:
    """Stands in for subprocess.Popen: yields canned stdout/stderr lines."""

    def __init__(self, stdout_lines, stderr_lines=(), returncode=0):
        self.stdout = iter(stdout_lines)
        self.stderr = iter(stderr_lines)
        self.returncode = returncode
        self.terminated = False

    def wait(self, timeout=None):
        return self.returncode

    def poll(self):
        return self.returncode if self.terminated else None

    def terminate(self):
        self.terminated = True


class FakePopen:
    def __init__(self, stdout_lines, stderr_lines=()):
        self.process = FakeProcess(stdout_lines, stderr_lines)
        self.calls = []

    def __call__(self, cmd, **kwargs):
        self.calls.append((cmd, kwargs))
        return self.process


def ok(time_ms, seq=None):
    return Entry.success(time_ms, sequence_number=seq)


def fail(kind=ErrorKind.TIMEOUT):
    return Entry.failure(kind)


@pytest.fixture
def linux_session_output():
    return "\n".join([
        "PING google.com (142.250.74.46) 56(84) bytes of data.",
        "64 bytes from lhr25s34-in-f14.1e100.net (142.250.74.46): icmp_seq=1 ttl=117 time=12.4 ms",
        "64 bytes from lhr25s34-in-f14.1e100.net (142.250.74.46): icmp_seq=2 ttl=117 time=14.1 ms",
        "Request timeout for icmp_seq 3",
        "64 bytes from lhr25s34-in-f14.1e100.net (142.250.74.46): icmp_seq=4 ttl=117 time=13.0 ms",
        "",
        "--- google.com ping statistics ---",
        "4 packets transmitted, 3 received, 25% packet loss, time 3004ms",
        "rtt min/avg/max/mdev = 12.4/13.1/14.1/0.7 ms",
    ])


@pytest.fixture
def windows_session_output():
    return "\r\n".join([
        "",
        "Pinging 8.8.8.8 with 32 bytes of data:",
        "Reply from 8.8.8.8: bytes=32 time=14ms TTL=117",
        "Reply from 8.8.8.8: bytes=32 time<1ms TTL=117",
        "Reply from 8.8.8.8: bytes=32 time=16ms TTL=117",
        "",
        "Ping statistics for 8.8.8.8:",
        "    Packets: Sent = 3, Received = 3, Lost = 0 (0% loss),",
        "Approximate round trip times in milli-seconds:",
        "    Minimum = 0ms, Maximum = 16ms, Average = 10ms",
    ])
