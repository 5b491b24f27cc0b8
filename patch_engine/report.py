"""
HTML report generator. Produces a self-contained HTML report for a batch.
"""

import html
import os
from datetime import datetime

from .diff_display import classify_diff_lines
from .editing.models import ApplyStatus, BatchOutcome, BatchReport


_STATUS_COLORS = {
    ApplyStatus.APPLIED: "#22c55e",
    ApplyStatus.FAILED: "#ef4444",
    ApplyStatus.SKIPPED: "#94a3b8",
}

_STATUS_ICONS = {
    ApplyStatus.APPLIED: "✔",
    ApplyStatus.FAILED: "✘",
    ApplyStatus.SKIPPED: "–",
}

_OUTCOME_TEXT = {
    BatchOutcome.ALL_APPLIED: ("success", "ALL APPLIED"),
    BatchOutcome.PARTIALLY_APPLIED: ("partial", "PARTIALLY APPLIED"),
    BatchOutcome.NONE_APPLIED: ("failure", "NONE APPLIED"),
}


def _escape(text: str) -> str:
    return html.escape(text)


def _diff_to_html(diff_text: str) -> str:
    """Convert a unified diff to syntax-colored HTML."""
    lines: list[str] = []
    for kind, line in classify_diff_lines(diff_text):
        escaped = _escape(line)
        if kind == "context":
            lines.append(escaped)
        else:
            lines.append(f'<span class="diff-{kind}">{escaped}</span>')
    return "\n".join(lines)


def generate_html_report(
    report: BatchReport,
    diffs: list[str] | None = None,
    source: str = "",
    output_dir: str = ".patch_engine/reports",
) -> str:
    """Generate a self-contained HTML report file.

    *diffs* lines up with ``report.results`` (one rendered diff per patch).
    Returns the path to the generated report.
    """
    os.makedirs(output_dir, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    filepath = os.path.join(output_dir, f"patch_report_{timestamp}.html")
    diffs = diffs or []

    files_html = ""
    for idx, result in enumerate(report.results):
        color = _STATUS_COLORS[result.status]
        icon = _STATUS_ICONS[result.status]
        reason = result.reason.value if result.reason else ""
        detail_html = ""
        if result.message:
            detail_html = f'<div class="file-message">{_escape(result.message)}</div>'
        diff_html = ""
        if idx < len(diffs) and diffs[idx]:
            diff_html = f'<pre class="diff-block">{_diff_to_html(diffs[idx])}</pre>'

        files_html += f"""
        <div class="file" style="border-left: 3px solid {color};">
            <div class="file-header">
                <span class="file-icon" style="color: {color};">{icon}</span>
                <span class="file-status">[{result.status.value}]</span>
                <span class="file-path">{_escape(result.file_path)}</span>
                <span class="file-reason">{_escape(reason)}</span>
                <span class="file-hunks">{result.hunks_applied} hunk(s)</span>
            </div>
            {detail_html}
            {diff_html}
        </div>
        """

    status_class, status_text = _OUTCOME_TEXT[report.overall]
    if report.dry_run:
        status_text += " (DRY RUN)"

    report_html = f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Patch Report: {_escape(report.summary())}</title>
<style>
  :root {{ --bg: #0f172a; --card: #1e293b; --text: #e2e8f0; --muted: #94a3b8;
           --accent: #3b82f6; --success: #22c55e; --failure: #ef4444; --partial: #f59e0b; }}
  * {{ margin: 0; padding: 0; box-sizing: border-box; }}
  body {{ font-family: 'Inter', 'Segoe UI', sans-serif; background: var(--bg);
          color: var(--text); line-height: 1.6; padding: 2rem; }}
  .container {{ max-width: 900px; margin: 0 auto; }}
  h1 {{ color: var(--accent); font-size: 1.5rem; margin-bottom: 0.5rem; }}
  .timestamp {{ color: var(--muted); font-size: 0.875rem; margin-bottom: 1.5rem; }}

  .dashboard {{ display: grid; grid-template-columns: repeat(auto-fit, minmax(140px, 1fr));
                gap: 1rem; margin-bottom: 2rem; }}
  .stat {{ background: var(--card); border-radius: 8px; padding: 1rem; text-align: center; }}
  .stat-value {{ font-size: 1.5rem; font-weight: 700; }}
  .stat-label {{ color: var(--muted); font-size: 0.75rem; text-transform: uppercase; }}

  .status-badge {{ display: inline-block; padding: 0.25rem 0.75rem; border-radius: 4px;
                   font-weight: 600; font-size: 0.875rem; margin-bottom: 1.5rem; }}
  .success {{ background: rgba(34, 197, 94, 0.2); color: var(--success); }}
  .partial {{ background: rgba(245, 158, 11, 0.2); color: var(--partial); }}
  .failure {{ background: rgba(239, 68, 68, 0.2); color: var(--failure); }}

  .source {{ background: var(--card); border-radius: 8px; padding: 1rem;
             margin-bottom: 1.5rem; font-style: italic; color: var(--muted); }}

  .file {{ background: var(--card); border-radius: 8px; padding: 1rem;
           margin-bottom: 0.75rem; }}
  .file-header {{ display: flex; align-items: center; gap: 0.5rem; flex-wrap: wrap; }}
  .file-icon {{ font-size: 1.1rem; }}
  .file-status {{ color: var(--accent); font-size: 0.8rem; font-weight: 600; }}
  .file-path {{ flex: 1; min-width: 200px; font-family: 'Consolas', monospace; }}
  .file-reason {{ color: var(--failure); font-size: 0.75rem; }}
  .file-hunks {{ color: var(--muted); font-size: 0.75rem; white-space: nowrap; }}
  .file-message {{ color: var(--muted); font-size: 0.8rem; margin-top: 0.5rem; }}

  .diff-block {{ background: #0d1117; border-radius: 6px; padding: 1rem;
                 margin-top: 0.75rem; overflow-x: auto; font-family: 'Consolas', monospace;
                 font-size: 0.8rem; line-height: 1.4; }}
  .diff-add {{ color: #22c55e; }}
  .diff-del {{ color: #ef4444; }}
  .diff-hunk {{ color: #60a5fa; }}
  .diff-meta {{ color: #e2e8f0; font-weight: 600; }}

  .footer {{ text-align: center; color: var(--muted); font-size: 0.75rem;
             margin-top: 2rem; padding-top: 1rem; border-top: 1px solid #334155; }}
</style>
</head>
<body>
<div class="container">
  <h1>Patch Report</h1>
  <p class="timestamp">Generated {datetime.now().strftime("%Y-%m-%d %H:%M:%S")}</p>

  <span class="status-badge {status_class}">{status_text}</span>

  {f'<div class="source">{_escape(source)}</div>' if source else ""}

  <div class="dashboard">
    <div class="stat">
      <div class="stat-value">{len(report.results)}</div>
      <div class="stat-label">Patches</div>
    </div>
    <div class="stat">
      <div class="stat-value" style="color: var(--success);">{len(report.applied)}</div>
      <div class="stat-label">Applied</div>
    </div>
    <div class="stat">
      <div class="stat-value" style="color: var(--failure);">{len(report.failed)}</div>
      <div class="stat-label">Failed</div>
    </div>
    <div class="stat">
      <div class="stat-value">{len(report.skipped)}</div>
      <div class="stat-label">Skipped</div>
    </div>
  </div>

  <h2 style="margin-bottom: 1rem; font-size: 1.1rem;">Files</h2>
  {files_html}

  <div class="footer">
    {_escape(report.summary())}
  </div>
</div>
</body>
</html>"""

    with open(filepath, "w", encoding="utf-8") as f:
        f.write(report_html)

    return filepath
