"""Standalone HTML report for profile analysis and sizing results.

Section order (fixed)::

    1. Summary of operators        (compatibility %, totals)
    2. Supported operators table
    3. Not supported operators table
    4. Sizing recommendations      (only when a sizing result is given)
    5. Supported commands          (collapsible raw JSON)
    6. Not supported commands      (collapsible raw JSON, triggers in <strong>)
    7. Metrics dump                (only when a metrics snapshot is given)
    8. FAQ                         (only without metrics or sizing context)

The document carries its own CSS and toggle script, so the file can be
mailed around or opened from disk without any other assets.
"""

import html
from datetime import datetime, timezone
from pathlib import Path

from bson import json_util

from profile_analyzer import summarize_keywords

REPORT_TITLE = "MongoDB Advisor Report"

ORACLE_API_DOCS_URL = (
    "https://docs.oracle.com/en/database/oracle/mongodb-api/mgapi/"
    "support-mongodb-apis-operations-and-data-types-reference.html"
)

# (sizing key, row label) in display order
SIZING_ROWS: list[tuple[str, str]] = [
    ("total_operations", "Total Operations"),
    ("uptime_seconds", "Uptime (seconds)"),
    ("ops_per_sec", "Operations per Second (OPS/sec)"),
    ("cpu_cores", "CPU Cores Required"),
    ("working_set_mb", "Working Set Size (MB)"),
    ("memory_required_mb", "Memory Required (MB)"),
    ("storage_required_bytes", "Storage Required (Bytes)"),
    ("network_bandwidth_mb_sec", "Network Bandwidth Required (MB/sec)"),
    ("connection_limit", "Connection Limits"),
]

_STYLE = """\
        body { font-family: Arial, sans-serif; margin: 20px; }
        h1 { color: #333; }
        h2 { color: #555; }
        table { width: 100%; border-collapse: collapse; margin-bottom: 20px; }
        th, td { border: 1px solid #ddd; padding: 8px; }
        th { background-color: #f2f2f2; }
        td.left-align { text-align: left; }
        td.center-align { text-align: center; }
        .summary { background-color: #f9f9f9; padding: 10px; border: 1px solid #ddd; }
        .collapsible { background-color: #f2f2f2; cursor: pointer; padding: 10px; border: 1px solid #ddd; margin-bottom: 5px; }
        .content { display: none; padding: 10px; border: 1px solid #ddd; margin-bottom: 10px; }
        strong { color: red; }
        pre { white-space: pre-wrap; word-wrap: break-word; }"""

_TOGGLE_SCRIPT = """\
    <script>
        var coll = document.getElementsByClassName("collapsible");
        for (var i = 0; i < coll.length; i++) {
            coll[i].addEventListener("click", function() {
                this.classList.toggle("active");
                var content = this.nextElementSibling;
                if (content.style.display === "block") {
                    content.style.display = "none";
                } else {
                    content.style.display = "block";
                }
            });
        }
    </script>"""

_FAQ = f"""\
    <h2>FAQ: Understanding the Compatibility Scores</h2>
    <div class="collapsible">How is the "Summary of Operators" percentage calculated?</div>
    <div class="content">
        <p>The percentage is the ratio of supported operator occurrences to all recognized operator occurrences (supported and not supported) found in the MongoDB profiler data.</p>
        <ul>
            <li><strong>Step 1:</strong> Count every occurrence of an operator from the supported list.</li>
            <li><strong>Step 2:</strong> Count every occurrence of an operator from the not supported list.</li>
            <li><strong>Step 3:</strong> <code>total_keywords = total_supported + total_not_supported</code>.</li>
            <li><strong>Step 4:</strong> <code>supported_percent = (total_supported / total_keywords) * 100</code>.</li>
        </ul>
        <p>For example, with <code>total_supported = 60</code> and <code>total_not_supported = 30</code>: <code>(60 / (60 + 30)) * 100 = 66.67%</code>.</p>
        <p>Operators are counted per occurrence, so one pipeline using <code>$match</code> three times contributes three.</p>
    </div>

    <div class="collapsible">Oracle API Documentation</div>
    <div class="content">
        <p>For the full list of MongoDB APIs, operations and data types supported by Oracle's MongoDB API, see:</p>
        <p><a href="{ORACLE_API_DOCS_URL}" target="_blank">Oracle API Documentation</a></p>
    </div>

    <div class="summary">
        <p><strong>Note:</strong> Only <code>command</code> operations are analyzed. Inserts and updates are not counted and may dominate the profiler log.</p>
    </div>"""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _pretty_json(doc) -> str:
    return html.escape(json_util.dumps(doc, indent=4), quote=False)


def highlight_not_supported(json_text: str, keywords) -> str:
    """Wrap each quoted occurrence of *keywords* in ``<strong>`` tags.

    Args:
        json_text: Pretty-printed (and already HTML-escaped) JSON.
        keywords: Operator names to mark.

    Returns:
        The text with every ``"<keyword>"`` replaced by
        ``<strong>"<keyword>"</strong>``.
    """
    for keyword in keywords:
        quoted = f'"{keyword}"'
        json_text = json_text.replace(quoted, f"<strong>{quoted}</strong>")
    return json_text


def _keyword_table(counts: dict[str, int]) -> list[str]:
    rows = ["    <table>", "        <tr><th>Operator</th><th>Count</th></tr>"]
    for keyword, count in counts.items():
        rows.append(f'        <tr><td>{html.escape(keyword)}</td>'
                    f'<td class="center-align">{count}</td></tr>')
    rows.append("    </table>")
    return rows


def summarize_sizing(sizing: dict) -> str:
    """Render the sizing recommendations table."""
    rows = ["    <h2>MongoDB Deployment Sizing Recommendations</h2>", "    <table>"]
    for key, label in SIZING_ROWS:
        rows.append(f'        <tr><td class="left-align">{label}</td>'
                    f'<td class="center-align">{sizing.get(key, "")}</td></tr>')
    rows.append("    </table>")
    return "\n".join(rows)


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

def render_report(classification: dict, metrics: dict | None = None,
                  sizing: dict | None = None) -> str:
    """Build the full HTML report.

    Args:
        classification: Output of ``profile_analyzer.classify`` (use
            empty dicts/lists for a sizing-only report).
        metrics: Optional metrics snapshot, dumped verbatim near the end.
        sizing: Optional output of ``sizing.perform_sizing``.

    Returns:
        Complete HTML document as a string.
    """
    summary = summarize_keywords(classification)
    supported_commands = classification.get("supported_commands", [])
    not_supported_commands = classification.get("not_supported_commands", [])

    L: list[str] = []
    L.append("<html>")
    L.append("<head>")
    L.append(f"    <title>{REPORT_TITLE}</title>")
    L.append('    <meta charset="utf-8">')
    L.append("    <style>")
    L.append(_STYLE)
    L.append("    </style>")
    L.append("</head>")
    L.append("<body>")
    L.append(f"    <h1>{REPORT_TITLE}</h1>")

    # 1-3. Operator summary and tables
    L.append("    <h2>Summary of Operators</h2>")
    L.append(f"    <p>Your operators are <strong>{summary['supported_percent']:.2f}%</strong>"
             " compatible with MongoDB API.</p>")
    L.append("    <table>")
    L.append(f'        <tr><td class="left-align">Total Operators</td>'
             f'<td class="center-align">{summary["total_keywords"]}</td></tr>')
    L.append(f'        <tr><td class="left-align">Total Supported Operators</td>'
             f'<td class="center-align">{summary["total_supported"]}</td></tr>')
    L.append(f'        <tr><td class="left-align">Total Not Supported Operators</td>'
             f'<td class="center-align">{summary["total_not_supported"]}</td></tr>')
    L.append("    </table>")
    L.append("    <h2>Supported Operators</h2>")
    L.extend(_keyword_table(classification.get("supported", {})))
    L.append("    <h2>Not Supported Operators</h2>")
    L.extend(_keyword_table(classification.get("not_supported", {})))

    # 4. Sizing
    if sizing:
        L.append(summarize_sizing(sizing))

    # 5. Supported commands
    L.append("    <h2>Details of Supported Commands</h2>")
    for i, entry in enumerate(supported_commands, 1):
        L.append(f'    <div class="collapsible">Supported Command {i}</div>')
        L.append(f'    <div class="content"><pre>{_pretty_json(entry)}</pre></div>')

    # 6. Not supported commands, triggering operators highlighted
    L.append("    <h2>Details of Not Supported Commands</h2>")
    for i, item in enumerate(not_supported_commands, 1):
        body = highlight_not_supported(_pretty_json(item["entry"]), item["keywords"])
        L.append(f'    <div class="collapsible">Not Supported Command {i}</div>')
        L.append(f'    <div class="content"><pre>{body}</pre></div>')

    # 7. Metrics dump
    if metrics:
        L.append("    <h2>Metrics Collected via MongoDB</h2>")
        L.append(f"    <pre>{_pretty_json(metrics)}</pre>")

    # 8. FAQ
    if not metrics and not sizing:
        L.append(_FAQ)

    L.append(_TOGGLE_SCRIPT)
    L.append("</body>")
    L.append("</html>")
    return "\n".join(L) + "\n"


# ---------------------------------------------------------------------------
# Output files
# ---------------------------------------------------------------------------

def report_timestamp(now: datetime | None = None) -> str:
    """UTC ISO timestamp safe for filenames, e.g. ``2026-10-19T08_05_09``."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H_%M_%S")


def report_filename(input_path, kind: str = "advisor",
                    now: datetime | None = None) -> str:
    """Derive the report filename from the input file's name.

    Args:
        input_path: Profile or metrics file the report was built from.
        kind: ``"advisor"`` for analysis reports, ``"sizing"`` for sizing-only.
        now: Timestamp override (tests).

    Returns:
        ``<stem>_report_advisor_<ts>.html`` or ``<stem>_sizing_report_<ts>.html``.
    """
    stem = Path(input_path).stem
    ts = report_timestamp(now)
    if kind == "sizing":
        return f"{stem}_sizing_report_{ts}.html"
    if kind == "advisor":
        return f"{stem}_report_advisor_{ts}.html"
    raise ValueError(f"Unknown report kind: {kind!r}")


def write_report(html_text: str, path) -> Path:
    """Write the report as UTF-8, creating parent directories as needed."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(html_text, encoding="utf-8")
    return path
