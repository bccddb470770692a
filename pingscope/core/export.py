"""
PingScope - Data Export
Saves a finished session to disk: the full analysis as JSON, or the
per-probe entries as CSV for a spreadsheet.
"""

import csv
import json
import logging
import os
import re
import time
from datetime import datetime
from typing import Optional, Sequence, Tuple

from pingscope.core.line_parser import Entry

logger = logging.getLogger(__name__)


def build_export_payload(result, entries: Sequence[Entry], host: str,
                         duration: str = "", ping_options=None, analysis_options=None,
                         timestamp: Optional[datetime] = None) -> dict:
    """
    Assemble everything worth keeping about a session into one dict.

    Args:
        result: AnalysisResult for the session
        entries: Entries as seen live (including stderr-derived failures)
        host: Target that was probed
        duration: Pre-formatted session length
        ping_options: PingOptions the session ran with (optional)
        analysis_options: AnalysisOptions used for the result (optional)
        timestamp: When the export was made; defaults to now
    """
    timestamp = timestamp or datetime.now()
    successful = sum(1 for e in entries if e.is_success)
    total = len(entries)

    options = {}
    if ping_options is not None:
        options.update(ping_options.to_dict())
    if analysis_options is not None:
        options.update(analysis_options.to_dict())

    return {
        "host": host,
        "timestamp": timestamp.isoformat(),
        "duration": duration,
        "options": options,
        "summary": {
            "totalPackets": total,
            "successfulPackets": successful,
            "failedPackets": total - successful,
            "successRate": (successful / total) * 100 if total else 0,
        },
        "analysis": result.to_dict(),
        "entries": [e.to_dict() for e in entries],
    }


def export_filename(host: str, epoch_ms: Optional[int] = None) -> str:
    """pingscope-<host>-<epoch ms>.json with anything unsafe in the host replaced."""
    if epoch_ms is None:
        epoch_ms = int(time.time() * 1000)
    safe_host = re.sub(r"[^a-z0-9]", "-", host, flags=re.IGNORECASE)
    return f"pingscope-{safe_host}-{epoch_ms}.json"


def export_json(payload: dict, directory: str = "") -> str:
    """Write the payload as indented JSON and return the file path."""
    directory = directory or "."
    os.makedirs(directory, exist_ok=True)
    filepath = os.path.join(directory, export_filename(payload.get("host", "")))

    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)

    logger.info(f"Exported analysis to {filepath}")
    return filepath


def export_csv(entries: Sequence[Entry], filepath: str) -> Tuple[bool, str]:
    """Export entries to a CSV file, one row per probe."""
    if not entries:
        return False, "No data to export"

    try:
        os.makedirs(os.path.dirname(filepath) or ".", exist_ok=True)

        with open(filepath, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow([
                "Index", "Sequence", "Success", "Response_ms",
                "Error", "TTL", "Source_IP",
            ])

            for idx, e in enumerate(entries, 1):
                writer.writerow([
                    idx,
                    "" if e.sequence_number is None else e.sequence_number,
                    int(e.is_success),
                    "" if e.response_time is None else f"{e.response_time:.3f}",
                    e.error_kind.value if e.error_kind else "",
                    "" if e.ttl is None else e.ttl,
                    e.source_ip or "",
                ])

        logger.info(f"Exported {len(entries)} entries to {filepath}")
        return True, f"Exported {len(entries)} entries to {filepath}"

    except OSError as e:
        logger.warning(f"CSV export failed: {e}")
        return False, f"Export failed: {e}"
