"""
PingScope - PDF Report Generator
Creates a printable ping session report using ReportLab.

One page (or more, for long sessions) with the session info, key
metrics, the quality verdict, the latency distribution and a table of
the most recent probes with failures highlighted.
"""

import logging
import os
from datetime import datetime
from typing import Sequence

from pingscope.core.line_parser import Entry

logger = logging.getLogger(__name__)

# ── Colors ────────────────────────────────────────────────────────────────────
ACCENT_HEX = "#0070BB"
HEADER_BG_HEX = "#0070BB"
ROW_ALT_HEX = "#F0F5FA"
BORDER_HEX = "#CCCCCC"
TEXT_DARK_HEX = "#1A1A2E"
TEXT_SECONDARY_HEX = "#4A5568"
FAIL_HEX = "#EF4444"
WARN_HEX = "#F59E0B"
OK_HEX = "#16A34A"

MAX_ENTRY_ROWS = 50

_QUALITY_COLORS = {
    "Excellent": OK_HEX,
    "Good": OK_HEX,
    "Fair": WARN_HEX,
    "Poor": FAIL_HEX,
    "Critical": FAIL_HEX,
}


def _fmt_ms(value) -> str:
    return f"{value:.2f} ms" if value is not None else "n/a"


def generate_ping_report(
    result,
    host: str,
    entries: Sequence[Entry] = (),
    duration: str = "",
    output_path: str = "",
) -> str:
    """
    Generate a PDF report for one ping session.

    Args:
        result: AnalysisResult from the analyzer
        host: Target that was probed
        entries: Entries to list (the last MAX_ENTRY_ROWS are shown)
        duration: Human-readable session length
        output_path: Where to save the PDF (auto-generated if empty)

    Returns:
        Path to the generated PDF file
    """
    from reportlab.lib.colors import HexColor, white
    from reportlab.lib.enums import TA_CENTER
    from reportlab.lib.pagesizes import letter
    from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
    from reportlab.lib.units import inch
    from reportlab.platypus import (
        Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle,
    )

    # ── Output path ───────────────────────────────────────────────────────
    if not output_path:
        timestamp = datetime.now().strftime("%Y-%m-%d_%H%M%S")
        docs_dir = os.path.join(os.path.expanduser("~"), "Documents")
        os.makedirs(docs_dir, exist_ok=True)
        output_path = os.path.join(docs_dir, f"Ping_Report_{timestamp}.pdf")
    else:
        os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)

    accent = HexColor(ACCENT_HEX)
    row_alt = HexColor(ROW_ALT_HEX)
    border_color = HexColor(BORDER_HEX)
    text_dark = HexColor(TEXT_DARK_HEX)
    text_secondary = HexColor(TEXT_SECONDARY_HEX)

    # ── Page setup ────────────────────────────────────────────────────────
    page_w, page_h = letter
    doc = SimpleDocTemplate(
        output_path,
        pagesize=letter,
        leftMargin=0.6 * inch,
        rightMargin=0.6 * inch,
        topMargin=0.6 * inch,
        bottomMargin=0.6 * inch,
        title=f"Ping Report - {host}",
    )
    avail_w = page_w - 1.2 * inch

    # ── Styles ────────────────────────────────────────────────────────────
    styles = getSampleStyleSheet()
    style_title = ParagraphStyle(
        "PSTitle", parent=styles["Title"],
        fontName="Helvetica-Bold", fontSize=18,
        textColor=accent, spaceAfter=4,
    )
    style_heading = ParagraphStyle(
        "PSHeading", parent=styles["Heading2"],
        fontName="Helvetica-Bold", fontSize=12,
        textColor=accent, spaceBefore=12, spaceAfter=6,
    )
    style_body = ParagraphStyle(
        "PSBody", parent=styles["Normal"],
        fontName="Helvetica", fontSize=9,
        textColor=text_dark,
    )
    style_cell = ParagraphStyle(
        "PSCell", parent=styles["Normal"],
        fontName="Helvetica", fontSize=8,
        textColor=text_dark, leading=10,
    )
    style_header_cell = ParagraphStyle(
        "PSHeaderCell", parent=styles["Normal"],
        fontName="Helvetica-Bold", fontSize=8,
        textColor=white, leading=10,
    )
    style_footer = ParagraphStyle(
        "PSFooter", parent=styles["Normal"],
        fontName="Helvetica", fontSize=7,
        textColor=text_secondary, alignment=TA_CENTER,
    )

    def grid_style(header: bool = True) -> list:
        cmds = [
            ("BOX", (0, 0), (-1, -1), 0.75, accent if header else border_color),
            ("INNERGRID", (0, 0), (-1, -1), 0.25, border_color),
            ("TOPPADDING", (0, 0), (-1, -1), 3),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
            ("LEFTPADDING", (0, 0), (-1, -1), 5),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ]
        if header:
            cmds.append(("BACKGROUND", (0, 0), (-1, 0), accent))
        return cmds

    now = datetime.now()
    story = []

    # ── Title + Session Info ──────────────────────────────────────────────
    story.append(Paragraph("Ping Session Report", style_title))
    info_lines = [f"<b>Target:</b> {host}",
                  f"<b>Report Date:</b> {now.strftime('%Y-%m-%d %H:%M:%S')}"]
    if duration:
        info_lines.append(f"<b>Duration:</b> {duration}")
    info_lines.append(f"<b>Probes:</b> {result.total_packets}")
    for line in info_lines:
        story.append(Paragraph(line, style_body))
    story.append(Spacer(1, 8))

    # ── Verdict ───────────────────────────────────────────────────────────
    quality_color = _QUALITY_COLORS.get(result.network_quality_text, TEXT_DARK_HEX)
    stable_text = "Stable" if result.is_stable else "Unstable"
    verdict = (
        f'<font name="Helvetica-Bold" size="14" color="{quality_color}">'
        f'{result.network_quality_score:.0f}/100  {result.network_quality_text}</font>'
        f'&nbsp;&nbsp;&nbsp;<font size="10" color="{TEXT_SECONDARY_HEX}">{stable_text}</font>'
    )
    story.append(Paragraph(verdict, style_body))
    story.append(Spacer(1, 4))
    story.append(Paragraph(f"<b>Recommendation:</b> {result.recommended_action}", style_body))

    # ── Key Metrics ───────────────────────────────────────────────────────
    story.append(Paragraph("Key Metrics", style_heading))

    def pair(label, value):
        return [Paragraph(f"<b>{label}</b>", style_cell), Paragraph(str(value), style_cell)]

    metrics_rows = [
        pair("Sent", result.total_packets) + pair("Min", _fmt_ms(result.min_success_time)),
        pair("Received", result.successful_packets) + pair("Max", _fmt_ms(result.max_success_time)),
        pair("Lost", result.failed_packets) + pair("Average", _fmt_ms(result.avg_success_time)),
        pair("Packet Loss", f"{result.packet_loss:.1f}%")
        + pair("Median", _fmt_ms(result.median_success_time)),
        pair("Timeout Rate", f"{result.timeout_rate:.1f}%")
        + pair("Std Dev", _fmt_ms(result.response_time_std_dev)),
        pair("Unreachable Rate", f"{result.unreachable_rate:.1f}%")
        + pair("Jitter", _fmt_ms(result.jitter)),
        pair("Longest OK Streak", result.longest_success_streak)
        + pair("Consistency", f"{result.consistency:.1f}/100"),
        pair("Longest Fail Streak", result.longest_failure_streak)
        + pair("Current Streak",
               f"{result.current_streak.count} {result.current_streak.type}"),
        pair("Timeouts", result.timeouts)
        + pair("Unreachable / Other", f"{result.unreachable_hosts} / {result.other_errors}"),
    ]
    col_w = avail_w / 4
    metrics_table = Table(metrics_rows, colWidths=[col_w] * 4)
    metrics_cmds = grid_style(header=False)
    metrics_cmds.append(("BACKGROUND", (0, 0), (-1, -1), HexColor("#F7F9FC")))
    metrics_table.setStyle(TableStyle(metrics_cmds))
    story.append(metrics_table)

    # ── Distribution ──────────────────────────────────────────────────────
    if result.time_distribution:
        story.append(Paragraph("Response Time Distribution", style_heading))
        dist_rows = [[Paragraph("Range", style_header_cell),
                      Paragraph("Replies", style_header_cell),
                      Paragraph("Share", style_header_cell)]]
        replies = result.successful_packets
        for band, count in result.time_distribution.items():
            share = f"{count / replies * 100:.1f}%" if replies else "0.0%"
            dist_rows.append([Paragraph(band, style_cell),
                              Paragraph(str(count), style_cell),
                              Paragraph(share, style_cell)])
        dist_table = Table(dist_rows, colWidths=[1.6 * inch, 1.2 * inch, 1.2 * inch],
                           hAlign="LEFT")
        dist_table.setStyle(TableStyle(grid_style()))
        story.append(dist_table)

    # ── Recent Entries ────────────────────────────────────────────────────
    shown = list(entries)[-MAX_ENTRY_ROWS:]
    if shown:
        story.append(Paragraph(
            f"Recent Probes (last {len(shown)} of {len(entries)})", style_heading))

        headers = ["#", "Seq", "Result", "Time", "TTL", "Source"]
        table_data = [[Paragraph(h, style_header_cell) for h in headers]]
        first_index = len(entries) - len(shown) + 1
        for idx, e in enumerate(shown, first_index):
            table_data.append([
                Paragraph(str(idx), style_cell),
                Paragraph("-" if e.sequence_number is None else str(e.sequence_number), style_cell),
                Paragraph("OK" if e.is_success
                          else f'<font color="{FAIL_HEX}">{e.error_kind.value}</font>',
                          style_cell),
                Paragraph(_fmt_ms(e.response_time) if e.is_success else "-", style_cell),
                Paragraph("-" if e.ttl is None else str(e.ttl), style_cell),
                Paragraph(e.source_ip or "-", style_cell),
            ])

        col_widths = [0.5 * inch, 0.7 * inch, 1.1 * inch, 1.1 * inch, 0.6 * inch]
        col_widths.append(avail_w - sum(col_widths))
        entry_table = Table(table_data, colWidths=col_widths, repeatRows=1)

        entry_cmds = grid_style()
        for i in range(1, len(table_data)):
            if i % 2 == 0:
                entry_cmds.append(("BACKGROUND", (0, i), (-1, i), row_alt))
        entry_table.setStyle(TableStyle(entry_cmds))
        story.append(entry_table)

    # ── Footer ────────────────────────────────────────────────────────────
    story.append(Spacer(1, 16))
    story.append(Paragraph(
        f"Generated by PingScope  |  {now.strftime('%Y-%m-%d %H:%M:%S')}", style_footer))

    def _add_page_numbers(canvas_obj, doc_obj):
        """Add page numbers to the footer of every page."""
        canvas_obj.saveState()
        canvas_obj.setFont("Helvetica", 7)
        canvas_obj.setFillColor(text_secondary)
        canvas_obj.drawRightString(
            page_w - 0.6 * inch, 0.35 * inch, f"Page {doc_obj.page}")
        canvas_obj.restoreState()

    doc.build(story, onFirstPage=_add_page_numbers,
              onLaterPages=_add_page_numbers)

    logger.info(f"PDF report generated: {output_path} ({result.total_packets} probes)")
    return output_path
