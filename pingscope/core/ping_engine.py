"""
PingScope - Ping Engine
Runs the system `ping` command in the background and collects what it
prints, so the analyzer can be re-run on the output at any moment.

Collects:
  - Every stdout line, in order (the text buffer the analyzer reads)
  - A live list of parsed entries for display
  - Recoverable stderr conditions ("No route to host", ...) as failed entries

Uses the system ping so no raw sockets or admin rights are needed.
"""

import logging
import platform
import socket
import subprocess
import sys
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

import psutil

from pingscope.core.formatting import format_duration
from pingscope.core.line_parser import Entry, ErrorKind, parse_ping_line
from pingscope.core.ping_analyzer import AnalysisOptions, AnalysisResult, analyze_ping_output

logger = logging.getLogger(__name__)

# stderr messages that mean "this probe failed", not "ping cannot run"
_UNREACHABLE_STDERR = ("No route to host", "Network is unreachable")
_OTHER_STDERR = ("Host is down", "Request timeout", "Destination unreachable")


# ── Command Line ─────────────────────────────────────────────────────────────

@dataclass
class PingOptions:
    """How to invoke ping. None means "use the platform default"."""
    count: Optional[int] = None
    interval: Optional[float] = None    # seconds between probes
    timeout: Optional[float] = None     # seconds to wait for each reply
    size: Optional[int] = None          # payload bytes
    source_ip: str = ""                 # bind to this local address

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "interval": self.interval,
            "timeout": self.timeout,
            "size": self.size,
            "sourceIp": self.source_ip or None,
        }


def _num(value: float) -> str:
    """Render 2.0 as "2" and 0.5 as "0.5"."""
    return str(int(value)) if float(value).is_integer() else str(value)


def build_ping_args(host: str, options: Optional[PingOptions] = None,
                    system: Optional[str] = None) -> List[str]:
    """
    Build the argument list (without "ping" itself) for this platform.

    Args:
        host: Target name or address, always the last argument
        options: Count / interval / timeout / size / source address
        system: platform.system() value to build for; defaults to this machine
    """
    options = options or PingOptions()
    system = (system or platform.system()).lower()
    args: List[str] = []

    if system == "windows":
        if options.count is not None:
            args += ["-n", str(options.count)]
        else:
            args.append("-t")  # Continuous until stopped
        if options.timeout is not None:
            args += ["-w", _num(options.timeout * 1000)]
        if options.size is not None:
            args += ["-l", str(options.size)]
        # -S forces ping through the adapter that owns this IP
        if options.source_ip:
            args += ["-S", options.source_ip]
    else:
        is_mac = system == "darwin"
        if options.count is not None:
            args += ["-c", str(options.count)]
        if options.interval is not None:
            args += ["-i", _num(options.interval)]
        if options.timeout is not None:
            # macOS -W is milliseconds, Linux -W is seconds
            if is_mac:
                args += ["-W", _num(options.timeout * 1000)]
            else:
                args += ["-W", _num(options.timeout)]
        if options.size is not None:
            args += ["-s", str(options.size)]
        if options.source_ip:
            args += ["-S" if is_mac else "-I", options.source_ip]

    args.append(host)
    return args


def resolve_interface_address(interface_name: str) -> str:
    """First IPv4 address of a local interface, or "" if there is none."""
    addrs = psutil.net_if_addrs()
    for addr in addrs.get(interface_name, []):
        if addr.family == socket.AF_INET:
            return addr.address
    logger.warning(f"No IPv4 address found for interface {interface_name!r}")
    return ""


def classify_stderr(message: str) -> Optional[Entry]:
    """
    Map a stderr message to a failed entry.
    Returns None for messages that mean ping itself cannot continue.
    """
    if any(token in message for token in _UNREACHABLE_STDERR):
        return Entry.failure(ErrorKind.UNREACHABLE)
    if any(token in message for token in _OTHER_STDERR):
        return Entry.failure(ErrorKind.OTHER)
    return None


# ── Ping Session ─────────────────────────────────────────────────────────────

class PingSession:
    """
    Background ping of one host.

    Usage:
        session = PingSession("8.8.8.8", PingOptions(count=10))
        session.start()
        session.wait()
        result = session.analyze()
    """

    def __init__(self, host: str, options: Optional[PingOptions] = None,
                 popen: Callable = subprocess.Popen):
        self.host = host
        self.options = options or PingOptions()
        self._popen = popen

        # Data storage
        self._entries: List[Entry] = []
        self._output: List[str] = []
        self._lock = threading.Lock()

        # Control
        self._process = None
        self._stdout_thread: Optional[threading.Thread] = None
        self._stderr_thread: Optional[threading.Thread] = None
        self._running = False
        self.start_time: Optional[datetime] = None
        self.end_time: Optional[datetime] = None
        self.error: Optional[str] = None

        # Callbacks
        self._on_entry: Optional[Callable[[Entry], None]] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def command(self) -> List[str]:
        return ["ping"] + build_ping_args(self.host, self.options)

    @property
    def elapsed_seconds(self) -> float:
        if self.start_time is None:
            return 0.0
        end = self.end_time or datetime.now()
        return (end - self.start_time).total_seconds()

    @property
    def duration_text(self) -> str:
        return format_duration(self.elapsed_seconds)

    def set_on_entry(self, callback: Callable[[Entry], None]):
        """Set callback for each new entry (called from a reader thread)."""
        self._on_entry = callback

    # ── Start / Stop ─────────────────────────────────────────────────────

    def start(self) -> bool:
        """Spawn ping and start the reader threads. False if it could not start."""
        if self._running:
            return True

        self.start_time = datetime.now()
        self.end_time = None
        self.error = None

        kwargs = {}
        # CREATE_NO_WINDOW on Windows prevents console flash
        if sys.platform == "win32":
            kwargs["creationflags"] = 0x08000000

        cmd = self.command
        try:
            self._process = self._popen(
                cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                text=True, bufsize=1, **kwargs
            )
        except OSError as e:
            self.error = f"Could not run ping: {e}"
            self.end_time = datetime.now()
            logger.error(self.error)
            return False

        self._running = True
        self._stdout_thread = threading.Thread(
            target=self._read_stdout, daemon=True, name=f"ping-out-{self.host}")
        self._stderr_thread = threading.Thread(
            target=self._read_stderr, daemon=True, name=f"ping-err-{self.host}")
        # stderr first: the stdout reader joins it when ping exits
        self._stderr_thread.start()
        self._stdout_thread.start()

        logger.info(f"Ping started: {' '.join(cmd)}")
        return True

    def stop(self):
        """Terminate ping and wait for the readers to drain."""
        self._terminate()
        self.wait(timeout=5)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until ping exits. True if it has finished."""
        for thread in (self._stdout_thread, self._stderr_thread):
            if thread and thread.is_alive():
                thread.join(timeout=timeout)
        return not self._running

    def _terminate(self):
        if self._process and self._process.poll() is None:
            try:
                self._process.terminate()
            except OSError as e:
                logger.debug(f"Terminate failed: {e}")

    # ── Readers ──────────────────────────────────────────────────────────

    def _add(self, entry: Entry):
        with self._lock:
            self._entries.append(entry)

        if self._on_entry:
            try:
                self._on_entry(entry)
            except Exception as e:
                logger.debug(f"Entry callback error: {e}")

    def _read_stdout(self):
        """Reader thread: buffer every line, parse the ones with probe data."""
        returncode = None
        try:
            for line in self._process.stdout:
                with self._lock:
                    self._output.append(line)
                stripped = line.strip()
                if not stripped:
                    continue
                entry = parse_ping_line(stripped)
                if entry:
                    self._add(entry)
            returncode = self._process.wait()
        except Exception as e:
            logger.error(f"Reading ping output failed: {e}")
            self.error = self.error or f"Reading ping output failed: {e}"
            self._terminate()
        finally:
            try:
                stderr_thread = self._stderr_thread
                if (stderr_thread and stderr_thread.is_alive()
                        and stderr_thread is not threading.current_thread()):
                    stderr_thread.join(timeout=5)
            finally:
                self._running = False
                self.end_time = datetime.now()
                with self._lock:
                    count = len(self._entries)
                logger.info(f"Ping to {self.host} exited with code {returncode} "
                            f"({count} entries)")

    def _read_stderr(self):
        """Reader thread: recoverable errors become failed entries, anything else stops ping."""
        try:
            for line in self._process.stderr:
                message = line.strip()
                if not message:
                    continue

                entry = classify_stderr(message)
                if entry:
                    logger.debug(f"Recoverable ping error: {message}")
                    with self._lock:
                        self._output.append(line)
                    self._add(entry)
                else:
                    logger.error(f"Ping failed: {message}")
                    self.error = message
                    self._terminate()
        except Exception as e:
            logger.error(f"Reading ping errors failed: {e}")
            self.error = self.error or f"Reading ping errors failed: {e}"
            self._terminate()

    # ── Snapshots ────────────────────────────────────────────────────────

    def get_entries_snapshot(self) -> List[Entry]:
        """Copy of all entries so far (thread-safe)."""
        with self._lock:
            return list(self._entries)

    def get_recent_entries(self, count: int = 8) -> List[Entry]:
        """The most recent N entries."""
        if count <= 0:
            return []
        with self._lock:
            return list(self._entries[-count:])

    def get_output_snapshot(self) -> str:
        """Everything ping has printed so far, as one string."""
        with self._lock:
            return "".join(self._output)

    def analyze(self, options: Optional[AnalysisOptions] = None) -> AnalysisResult:
        """Run the analyzer over the whole output buffer."""
        return analyze_ping_output(self.get_output_snapshot(), options)
