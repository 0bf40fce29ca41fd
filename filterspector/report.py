"""
Standalone HTML summary of an aggregation, with an embedded size share chart.
"""
import io
import os
import base64
import logging
import matplotlib
import matplotlib.pyplot as plt
from html import escape
from typing import List, Optional
from .aggregator import Aggregation
from .config import Settings
from .constants import SCRIPT_NAME, SCRIPT_VERSION, BYTES_PER_MB
from .diagnostics import DiagnosticWarning
from .evaluator import EvaluationResult
from .models import AggregatedEntry
matplotlib.use('Agg')
logger = logging.getLogger(__name__)
REPORT_CSS = "<style>:root {--bg-color: #f8f9fa; --text-color: #212529; --text-secondary-color: #495057; --accent-color: #2563eb; --border-color: #dee2e6; --header-bg: #ffffff; --table-header-bg: #e9ecef; --table-row-hover-bg: #dde6f0; --code-bg: #e9ecef; --details-bg: #ffffff; --summary-bg: #f1f3f5; --summary-open-bg: #343a40; --summary-open-text: #ffffff; --status-ok-text: #198754; --status-warn-text: #fd7e14; --status-ko-text: #dc3545;}@media (prefers-color-scheme: dark) {:root {--bg-color: #121212; --text-color: #e8e6e3; --text-secondary-color: #adb5bd; --accent-color: #60a5fa; --border-color: #343a40; --header-bg: #1c1c1c; --table-header-bg: #2c2c2e; --table-row-hover-bg: #3a3a3c; --code-bg: #2c2c2e; --details-bg: #1c1c1c; --summary-bg: #2c2c2e; --summary-open-bg: #1e3a8a; --summary-open-text: #ffffff; --status-ok-text: #28a745; --status-warn-text: #ffc107; --status-ko-text: #f04a5f;}}body {font-family: -apple-system, BlinkMacSystemFont, \"Segoe UI\", Roboto, Arial, sans-serif; margin: 0; padding: 0 2rem 2rem 2rem; line-height: 1.6; background-color: var(--bg-color); color: var(--text-color);} .report-header {display: flex; justify-content: center; gap: 1em; background: var(--header-bg); border-bottom: 1px solid var(--border-color); padding: 1.2em 1.5em; margin: 0 -2rem 2.5rem -2rem; position: sticky; top: 0;} .report-title {font-size: 1.25em; font-weight: 600;} .report-meta {color: var(--text-secondary-color);} h2 {font-size: 1.6rem; border-bottom: 2px solid var(--border-color); padding-bottom: .3em; margin: 2.5rem 0 1.5rem 0;} table {border-collapse: collapse; width: 100%; margin-bottom: 2rem; border: 1px solid var(--border-color);} th, td {padding: .6rem 1rem; text-align: left; border-bottom: 1px solid var(--border-color);} th {background: var(--table-header-bg); text-transform: uppercase; font-size: .8em; letter-spacing: .05em;} tbody tr:hover {background-color: var(--table-row-hover-bg);} details {margin: 1rem 0; border: 1px solid var(--border-color); background-color: var(--details-bg);} summary {padding: 1rem 1.2rem; cursor: pointer; font-weight: 600; background-color: var(--summary-bg);} details[open] > summary {background-color: var(--summary-open-bg); color: var(--summary-open-text);} details > :not(summary) {padding: 1.5rem;} code {font-family: \"SF Mono\", \"Consolas\", monospace; font-size: 0.9em; background-color: var(--code-bg); padding: .2em .4em;} .status-ok {color: var(--status-ok-text); font-weight: 700;} .status-warn {color: var(--status-warn-text); font-weight: 700;} .status-ko {color: var(--status-ko-text); font-weight: 700;} .status-na {color: var(--text-secondary-color); font-style: italic;} .status-info {color: var(--accent-color); font-weight: 700;}</style>"
def tag(status, text=None):
    s_upper = str(status).upper()
    txt = text if text is not None else s_upper
    css_class = {'OK': 'status-ok', 'KO': 'status-ko', 'WARN': 'status-warn', 'NA': 'status-na', 'INFO': 'status-info'}.get(s_upper, 'status-info')
    return f'<span class="{css_class}">{escape(str(txt))}</span>'
def _entry_label(entry: AggregatedEntry) -> str:
    label = f"CAN{entry.channel} {entry.id_hex}"
    if entry.is_group and entry.pgn is not None:
        label = f"CAN{entry.channel} PGN {entry.pgn:X}"
    return f"{label} {entry.name}".strip()
def _generate_size_share_plot_base64(entries: List[AggregatedEntry], limit: int) -> str:
    top = [e for e in entries if e.percentage is not None][:limit]
    if not top:
        return ""
    try:
        try:
            plt.style.use('seaborn-v0_8-whitegrid')
        except OSError:
            plt.style.use('ggplot')
        fig, ax = plt.subplots(figsize=(10, max(2.5, 0.32 * len(top))), dpi=90)
        labels = [_entry_label(e) for e in reversed(top)]
        values = [e.percentage for e in reversed(top)]
        colors = ['#D9534F' if e.length_mismatch else '#2563eb' for e in reversed(top)]
        ax.barh(labels, values, color=colors)
        ax.set_xlabel('Share of logged size (%)', fontsize=10)
        ax.set_xlim(0, max(values) * 1.1 if max(values) > 0 else 1)
        ax.tick_params(axis='both', which='major', labelsize=8)
        fig.tight_layout(pad=0.5)
        buf = io.BytesIO()
        fig.savefig(buf, format='png')
        plt.close(fig)
        buf.seek(0)
        img_base64 = base64.b64encode(buf.read()).decode('utf-8')
        return f"data:image/png;base64,{img_base64}"
    except Exception as e:
        logger.warning("Could not generate size share plot: %s", e)
        return ""
def _write_report_header(write_html, title):
    write_html("<!DOCTYPE html><html lang='en'><head><meta charset='UTF-8'>")
    write_html(f"<title>{SCRIPT_NAME} Report - {escape(title)}</title>")
    write_html(REPORT_CSS)
    write_html("</head><body>")
    write_html(f"""
        <div class="report-header">
            <span class="report-title">CAN Filter Report</span>
            <span class="report-meta">{escape(title)} &middot; {SCRIPT_NAME} v{SCRIPT_VERSION}</span>
        </div>
    """)
def _write_session_section(write_html, aggregation: Aggregation):
    m = aggregation.metrics
    write_html("<h2>Session Summary</h2>")
    write_html("<table><thead><tr><th colspan='2'>Trace</th></tr></thead><tbody>")
    write_html(f"<tr><td>Frames</td><td>{aggregation.total_frames}</td></tr>")
    write_html(f"<tr><td>Unique IDs</td><td>{m.unique_entries}</td></tr>")
    write_html(f"<tr><td>Duration (s)</td><td>{m.duration_s:.3f}</td></tr>")
    write_html(f"<tr><td>Frames/s</td><td>{m.frames_per_second:.1f}</td></tr>")
    write_html(f"<tr><td>Avg. data length (bytes)</td><td>{m.avg_data_length:.1f}</td></tr>")
    if m.source_size_bytes:
        write_html(f"<tr><td>Estimated size (MB)</td><td>{m.estimated_size_bytes / BYTES_PER_MB:.2f}</td></tr>")
        write_html(f"<tr><td>MB/min</td><td>CSV: {m.mb_per_min:.1f} | MF4: ~{m.mf4_mb_per_min:.1f} | MFC: ~{m.mfc_mb_per_min:.1f}</td></tr>")
    write_html("</tbody></table>")
    if aggregation.channels:
        write_html("<table><thead><tr><th>Channel</th><th>IDs</th><th>29-bit IDs</th></tr></thead><tbody>")
        for channel, summary in aggregation.channels.items():
            write_html(f"<tr><td>CAN{channel}</td><td>{summary.identifiers}</td><td>{summary.extended_identifiers}</td></tr>")
        write_html("</tbody></table>")
def _write_evaluation_section(write_html, evaluation: Optional[EvaluationResult]):
    if evaluation is None:
        return
    stats = evaluation.stats
    write_html("<h2>Filter Evaluation</h2>")
    write_html(f"<p>Reduction: {tag('INFO', f'{evaluation.reduction_percent:.1f}%')} "
               f"({stats.accepted_frames} of {stats.total_frames} frames kept)</p>")
    write_html("<table><thead><tr><th>Channel</th><th>Total</th><th>Accepted</th><th>Rejected</th></tr></thead><tbody>")
    for channel, counts in sorted(stats.by_channel.items()):
        rejected = tag('WARN', counts.rejected) if counts.total and counts.rejected == counts.total else counts.rejected
        write_html(f"<tr><td>CAN{channel}</td><td>{counts.total}</td><td>{counts.accepted}</td><td>{rejected}</td></tr>")
    write_html("</tbody></table>")
def _write_contributors_section(write_html, aggregation: Aggregation, settings: Settings):
    entries = aggregation.entries
    if not entries:
        return
    write_html("<h2>Size Contributors</h2>")
    plot = _generate_size_share_plot_base64(entries, settings.chart_limit)
    if plot:
        write_html(f"<img src='{plot}' alt='Size share per ID' style='max-width:100%'>")
    write_html(f"<details open><summary>Top {settings.summary_limit} entries</summary>")
    write_html("<table><thead><tr><th>Channel</th><th>ID</th><th>Name</th><th>Count</th><th>Length</th><th>Share</th><th>Match</th></tr></thead><tbody>")
    for entry in entries[:settings.summary_limit]:
        ident = f"PGN {entry.pgn:X} ({len(entry.grouped_identifiers)} IDs)" if entry.is_group else entry.id_hex
        share = tag('NA', 'N/A') if entry.percentage is None else f"{entry.percentage:.2f}%"
        if entry.from_dictionary_only:
            match = tag('NA', 'No data')
        elif entry.is_matched:
            match = tag('WARN', 'Length mismatch') if entry.length_mismatch else tag('OK', 'Matched')
        else:
            match = tag('KO', 'Unknown')
        length = entry.data_length if entry.data_length is not None else '-'
        write_html(f"<tr><td>{entry.channel_name}</td><td><code>{escape(ident)}</code></td><td>{escape(entry.name)}</td>"
                   f"<td>{entry.count}</td><td>{length}</td><td>{share}</td><td>{match}</td></tr>")
    write_html("</tbody></table></details>")
def _write_diagnostics_section(write_html, diagnostics: Optional[List[DiagnosticWarning]]):
    if not diagnostics:
        return
    write_html("<h2>Configuration Warnings</h2><ul>")
    for warning in diagnostics:
        write_html(f"<li>{tag('WARN', warning.code)} {escape(warning.message)}</li>")
    write_html("</ul>")
def generate_html_report(aggregation: Aggregation, path: str, evaluation: Optional[EvaluationResult] = None,
                         settings: Optional[Settings] = None, title: Optional[str] = None,
                         diagnostics: Optional[List[DiagnosticWarning]] = None) -> Optional[str]:
    """
    Writes the HTML report.

    Args:
        aggregation: Aggregation to summarize (raw or filtered)
        path: Output file path
        evaluation: Filter evaluation whose per-channel counts are shown
        settings: Table and chart limits
        title: Report subtitle, the output file name by default
        diagnostics: Configuration warnings to list

    Returns:
        Optional[str]: The written path, or None when the file could not be written
    """
    settings = settings or Settings()
    title = title or os.path.splitext(os.path.basename(path))[0]
    try:
        with open(path, 'w', encoding='utf-8') as f_report:
            def write_html(html_content):
                f_report.write(html_content + "\n")
            _write_report_header(write_html, title)
            _write_session_section(write_html, aggregation)
            _write_evaluation_section(write_html, evaluation)
            _write_diagnostics_section(write_html, diagnostics)
            _write_contributors_section(write_html, aggregation, settings)
            write_html("</body></html>")
        logger.info("Report generated: %s", path)
        return path
    except OSError as e:
        logger.error("Failed to write report to '%s': %s", path, e)
        return None
