"""
PingScope - Command Line Application
Pings a host (or reads saved ping output), prints a live feed of
replies, and finishes with a network health report.
"""

import argparse
import logging
import sys
from typing import List, Optional, TextIO

from pingscope import __version__
from pingscope.core.export import build_export_payload, export_csv, export_json
from pingscope.core.formatting import build_report_lines, format_entry
from pingscope.core.line_parser import Entry, parse_ping_output
from pingscope.core.pdf_report import generate_ping_report
from pingscope.core.ping_analyzer import AnalysisOptions, AnalysisResult, analyze_ping_output
from pingscope.core.ping_engine import PingOptions, PingSession, resolve_interface_address
from pingscope.core.settings_manager import SettingsManager, get_settings

logger = logging.getLogger(__name__)

EPILOG = """\
examples:
  pingscope google.com
  pingscope -c 10 8.8.8.8
  pingscope --count 5 --interval 2 example.com
  ping -c 20 1.1.1.1 > out.txt; pingscope --file out.txt
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pingscope",
        description="Ping a host and report on network health.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("host", nargs="?", help="host name or address to ping")
    parser.add_argument("-f", "--file",
                        help="analyze saved ping output instead of pinging ('-' for stdin)")
    parser.add_argument("-c", "--count", type=int,
                        help="number of packets to send (default: until Ctrl+C)")
    parser.add_argument("-i", "--interval", type=float,
                        help="seconds between packets")
    parser.add_argument("-t", "--timeout", type=float,
                        help="seconds to wait for each reply")
    parser.add_argument("-s", "--size", type=int,
                        help="payload bytes per packet")
    parser.add_argument("-d", "--display", type=int,
                        help="number of recent entries listed in the report")
    parser.add_argument("--interface",
                        help="send pings through this local network interface")
    parser.add_argument("--jitter-threshold", type=float, metavar="MS",
                        help="jitter (ms) at which consistency drops to 0")
    parser.add_argument("-e", "--export", action="store_true",
                        help="export results to a JSON file when done")
    parser.add_argument("--csv", metavar="PATH",
                        help="write every entry to a CSV file")
    parser.add_argument("--pdf", nargs="?", const="", metavar="PATH",
                        help="write a PDF report (default: ~/Documents)")
    parser.add_argument("-q", "--quiet", action="store_true",
                        help="do not print replies as they arrive")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="show debug logging on the console")
    parser.add_argument("--version", action="version",
                        version=f"%(prog)s {__version__}")
    return parser


class App:
    """One run of the command line tool."""

    def __init__(self, args: argparse.Namespace,
                 settings: Optional[SettingsManager] = None,
                 out: Optional[TextIO] = None):
        self.args = args
        self._settings = settings or get_settings()
        self._out = out or sys.stdout

    def _print(self, text: str = ""):
        print(text, file=self._out)

    # ── Options ──────────────────────────────────────────────────────────

    def analysis_options(self) -> AnalysisOptions:
        options = self._settings.analysis_options()
        if self.args.jitter_threshold is not None:
            options = AnalysisOptions(
                timeout_threshold_ms=options.timeout_threshold_ms,
                jitter_threshold_ms=self.args.jitter_threshold,
                stability_threshold_pct=options.stability_threshold_pct,
            )
        return options

    def ping_options(self) -> PingOptions:
        options = self._settings.ping_options()
        options.count = self.args.count
        if self.args.interval is not None:
            options.interval = self.args.interval
        if self.args.timeout is not None:
            options.timeout = self.args.timeout
        if self.args.size is not None:
            options.size = self.args.size
        if self.args.interface:
            options.source_ip = resolve_interface_address(self.args.interface)
        return options

    @property
    def display_count(self) -> int:
        if self.args.display is not None:
            return max(0, self.args.display)
        return self._settings.display_count

    # ── Run ──────────────────────────────────────────────────────────────

    def run(self) -> int:
        """Run and return the process exit code."""
        try:
            analysis_options = self.analysis_options()
        except ValueError as e:
            self._print(f"Error: {e}")
            return 2

        if self.args.file:
            return self._run_file(analysis_options)
        return self._run_live(analysis_options)

    def _run_file(self, analysis_options: AnalysisOptions) -> int:
        source = self.args.file
        try:
            if source == "-":
                text = sys.stdin.read()
            else:
                with open(source, "r", encoding="utf-8", errors="replace") as f:
                    text = f.read()
        except OSError as e:
            self._print(f"Error: cannot read {source}: {e}")
            return 1

        entries = parse_ping_output(text)
        result = analyze_ping_output(text, analysis_options)
        host = self.args.host or source
        self._finish(result, entries, host, "", None, analysis_options)
        return 0

    def _run_live(self, analysis_options: AnalysisOptions) -> int:
        ping_options = self.ping_options()
        session = PingSession(self.args.host, ping_options)
        if not self.args.quiet:
            session.set_on_entry(lambda entry: self._print(format_entry(entry)))

        if not session.start():
            self._print(f"Error: {session.error}")
            return 1

        self._print(f"Pinging {self.args.host} (Ctrl+C to stop)")
        try:
            while not session.wait(timeout=0.5):
                pass
        except KeyboardInterrupt:
            logger.info("Interrupted, stopping ping")
            session.stop()

        entries = session.get_entries_snapshot()
        if session.error and not entries:
            self._print(f"Error: {session.error}")
            return 1

        result = session.analyze(analysis_options)
        self._finish(result, entries, self.args.host, session.duration_text,
                     ping_options, analysis_options)

        if session.error:
            self._print(f"Ping stopped early: {session.error}")
            return 1
        return 0

    # ── Output ───────────────────────────────────────────────────────────

    def _finish(self, result: AnalysisResult, entries: List[Entry], host: str,
                duration: str, ping_options: Optional[PingOptions],
                analysis_options: AnalysisOptions):
        recent = entries[-self.display_count:] if self.display_count else []
        self._print()
        for line in build_report_lines(result, host, duration, recent):
            self._print(line)

        if not entries:
            return

        if self.args.export:
            payload = build_export_payload(result, entries, host, duration,
                                           ping_options, analysis_options)
            try:
                path = export_json(payload, self._settings.export_dir)
                self._print(f"\nResults exported to {path}")
            except OSError as e:
                logger.error(f"JSON export failed: {e}")
                self._print(f"\nJSON export failed: {e}")

        if self.args.csv:
            _, message = export_csv(entries, self.args.csv)
            self._print(f"\n{message}")

        if self.args.pdf is not None:
            try:
                path = generate_ping_report(result, host, entries, duration, self.args.pdf)
                self._print(f"\nPDF report written to {path}")
            except OSError as e:
                logger.error(f"PDF report failed: {e}")
                self._print(f"\nPDF report failed: {e}")
