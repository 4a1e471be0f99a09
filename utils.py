# utils.py
"""
Utility helpers: logging setup, JSON loading, report generation, and console output.

- Uses Rich for colorful, wrapped tables in the terminal.
- Saves JSON (Slack payloads), CSV, and HTML previews of rendered notifications.
"""

from datetime import datetime, timezone
from html import escape
from typing import List, Dict, Optional
import json
import csv
import logging
import os
from json import JSONDecodeError

from rich.console import Console
from rich.table import Table
from rich.text import Text

from config import DEFAULT_LOG_LEVEL, LOG_LEVEL_ENV, TIER_COLOURS
from models import OutboundMessage
from notifier.slack import to_slack_payload

_console = Console()

_TIER_STYLES = {
    "critical": "bold red",
    "high": "bold dark_orange",
    "medium": "bold yellow",
    "low": "blue",
    "informational": "dim",
}

def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging from the argument or LOG_LEVEL (default INFO).
    """
    name = (level or os.environ.get(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL).upper()
    logging.basicConfig(level=getattr(logging, name, logging.INFO))
    logging.getLogger().setLevel(getattr(logging, name, logging.INFO))

def load_json_file(path: str):
    """
    Load JSON from a file and return the decoded document.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Input JSON file not found: {path}.")
    try:
        with open(path, "r", encoding="utf-8-sig") as fh:
            return json.load(fh)
    except JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e.msg} (line {e.lineno} column {e.colno})") from e

def ensure_reports_dir(path: str = "reports") -> str:
    os.makedirs(path, exist_ok=True)
    return path

def _tier_for_colour(colour: str) -> str:
    for tier, value in TIER_COLOURS.items():
        if value == colour:
            return tier
    return ""

def _field_value(message: OutboundMessage, name: str) -> str:
    for f in message.fields:
        if f.name == name:
            return f.value
    return ""

def messages_to_table_rows(messages: List[OutboundMessage]) -> List[List[str]]:
    rows: List[List[str]] = []
    for m in messages:
        rows.append([
            m.title,
            _field_value(m, "Severity"),
            _field_value(m, "Region"),
            _field_value(m, "Account"),
            m.link or "",
        ])
    return rows

def save_report(messages: List[OutboundMessage], mode: str, extra: dict = None, out_dir: str = "reports") -> Dict[str, str]:
    """
    Save JSON, CSV, and HTML previews of rendered messages and return their paths.
    """
    out_dir = ensure_reports_dir(out_dir)
    now = datetime.now(timezone.utc).replace(microsecond=0, tzinfo=None).isoformat() + "Z"
    report = {
        "generated_at": now,
        "mode": mode,
        "summary": {"messages_count": len(messages)},
        "messages": [to_slack_payload(m) for m in messages],
    }
    if extra:
        report["extra"] = extra

    base_ts = now.replace(":", "-")
    json_path = os.path.join(out_dir, f"notifications-{base_ts}-{mode}.json")
    csv_path = os.path.join(out_dir, f"notifications-{base_ts}-{mode}.csv")
    html_path = os.path.join(out_dir, f"notifications-{base_ts}-{mode}.html")

    # JSON
    with open(json_path, "w", encoding="utf-8") as fh:
        json.dump(report, fh, indent=2)

    # CSV
    fieldnames = ["title", "tier", "severity", "region", "account", "type", "link"]
    with open(csv_path, "w", encoding="utf-8", newline="") as fh:
        writer = csv.DictWriter(fh, fieldnames=fieldnames)
        writer.writeheader()
        for m in messages:
            writer.writerow({
                "title": m.title,
                "tier": _tier_for_colour(m.color),
                "severity": _field_value(m, "Severity"),
                "region": _field_value(m, "Region"),
                "account": _field_value(m, "Account"),
                "type": m.fallback,
                "link": m.link or "",
            })

    # HTML
    html_rows: List[str] = []
    html_rows.append("<!doctype html>")
    html_rows.append("<html><head><meta charset='utf-8'><title>Notification Preview</title>")
    html_rows.append("<style>body{font-family:Arial,Helvetica,sans-serif;margin:20px}.msg{border-left:6px solid #ddd;padding:8px 12px;margin-bottom:16px}table{border-collapse:collapse;width:100%}th,td{border:1px solid #ddd;padding:6px;text-align:left;vertical-align:top}th{background:#f2f2f2;width:180px}pre{white-space:pre-wrap;word-wrap:break-word;margin:0}</style>")
    html_rows.append("</head><body>")
    html_rows.append(f"<h2>Notification Preview - {now} - mode: {escape(mode)}</h2>")
    html_rows.append(f"<p>Total notifications: {len(messages)}</p>")
    if extra:
        html_rows.append("<div><strong>Metadata:</strong><ul>")
        for k, v in extra.items():
            html_rows.append(f"<li>{escape(str(k))}: {escape(str(v))}</li>")
        html_rows.append("</ul></div>")
    for m in messages:
        html_rows.append(f"<div class='msg' style='border-left-color:{escape(m.color)}'>")
        if m.pretext:
            html_rows.append(f"<p class='pretext'>{escape(m.pretext)}</p>")
        if m.link:
            html_rows.append(f"<h3><a href='{escape(m.link)}'>{escape(m.title)}</a></h3>")
        else:
            html_rows.append(f"<h3>{escape(m.title)}</h3>")
        html_rows.append("<table><tbody>")
        for f in m.fields:
            html_rows.append(f"<tr><th>{escape(f.name)}</th><td><pre>{escape(f.value)}</pre></td></tr>")
        html_rows.append("</tbody></table>")
        if m.footer:
            html_rows.append(f"<p class='footer'>{escape(m.footer)} | {escape(m.fallback)}</p>")
        html_rows.append("</div>")
    html_rows.append("</body></html>")
    with open(html_path, "w", encoding="utf-8") as fh:
        fh.write("\n".join(html_rows))

    return {"json": json_path, "csv": csv_path, "html": html_path}

# --- Console printing with color/wrapping ---

def _rich_severity_text(message: OutboundMessage, severity: str):
    """
    Return a Rich Text object styled by the message's tier.
    """
    return Text(severity, style=_TIER_STYLES.get(_tier_for_colour(message.color), ""))

def print_summary_and_report_path(messages: List[OutboundMessage], report_paths: Dict[str, str], show_top: int = 5, print_full_table: bool = False):
    """
    Print a compact summary and a colorful table of rendered notifications.
    """
    total = len(messages)
    _console.print("\nNotification summary:")
    _console.print(f"- Total notifications: {total}")
    if total:
        rows = messages_to_table_rows(messages)
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Title", style="magenta", overflow="fold")
        table.add_column("Severity", justify="right")
        table.add_column("Region", style="cyan")
        table.add_column("Account", style="cyan")
        table.add_column("Docs", overflow="fold")
        shown = messages if print_full_table else messages[:show_top]
        for m, r in zip(shown, rows):
            table.add_row(r[0], _rich_severity_text(m, r[1]), r[2], r[3], r[4])
        _console.print(table)
    _console.print("\nSaved reports:")
    _console.print(f"- JSON: {report_paths.get('json')}")
    _console.print(f"- CSV:  {report_paths.get('csv')}")
    _console.print(f"- HTML: {report_paths.get('html')}\n")
