"""Rendering of command results as JSON or human-readable tables."""

from typing import Any, List, Optional, Sequence, TextIO
import json
import sys


def is_json(json_flag: bool = False, pretty_flag: bool = False, stream: Optional[TextIO] = None) -> bool:
    """JSON when stdout is piped (agent use) or when --json/--pretty is set."""
    stream = stream or sys.stdout
    if not _isatty(stream):
        return True
    return json_flag or pretty_flag


def is_pretty(json_flag: bool = False, pretty_flag: bool = False, stream: Optional[TextIO] = None) -> bool:
    """Indent JSON with --pretty, or with --json when a human is looking at it."""
    if pretty_flag:
        return True
    return json_flag and _isatty(stream or sys.stdout)


def _isatty(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def print_json(value: Any, pretty: bool = False, stream: Optional[TextIO] = None) -> None:
    stream = stream or sys.stdout
    if pretty:
        stream.write(json.dumps(value, indent=2, ensure_ascii=False) + "\n")
    else:
        stream.write(json.dumps(value, ensure_ascii=False) + "\n")


def print_table(headers: Sequence[str], rows: Sequence[Sequence[str]], stream: Optional[TextIO] = None) -> None:
    """Write a column-aligned table with a header row."""
    stream = stream or sys.stdout
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            if i < len(widths):
                widths[i] = max(widths[i], len(cell))
            else:
                widths.append(len(cell))

    def line(cells: Sequence[str]) -> str:
        padded = [cell.ljust(widths[i]) for i, cell in enumerate(cells)]
        return "  ".join(padded).rstrip()

    stream.write(line(headers) + "\n")
    for row in rows:
        stream.write(line(row) + "\n")


def print_key_value(rows: Sequence[Sequence[str]], stream: Optional[TextIO] = None) -> None:
    """Two-column detail view; rows with empty or '-' values are skipped."""
    visible = [row for row in rows if len(row) == 2 and row[1] and row[1] != "-"]
    if not visible:
        return
    stream = stream or sys.stdout
    width = max(len(key) for key, _ in visible)
    for key, value in visible:
        stream.write(f"{key.ljust(width)}  {value}\n")


def truncate(value: str, max_len: int) -> str:
    if len(value) <= max_len:
        return value
    return value[: max_len - 1] + "…"


def format_budget(cents: Any) -> str:
    """Meta budgets are minor units: "5000" -> "50.00"."""
    if cents in (None, "", "0", 0):
        return "-"
    digits = "".join(c for c in str(cents) if c.isdigit())
    if not digits:
        return "-"
    amount = int(digits)
    return f"{amount // 100}.{amount % 100:02d}"


def format_time(value: Optional[str]) -> str:
    """'2026-01-15T10:30:00+0000' -> '2026-01-15 10:30'"""
    if not value:
        return "-"
    if len(value) >= 16:
        return f"{value[:10]} {value[11:16]}"
    return value


def format_count(n: Any) -> str:
    if not isinstance(n, (int, float)) or n <= 0:
        return "-"
    if n >= 1_000_000:
        return f"{n / 1_000_000:.1f}M"
    if n >= 1_000:
        return f"{n / 1_000:.1f}K"
    return str(int(n))


def cell(record: dict, key: str) -> str:
    """String value of a record field for table display."""
    value = record.get(key)
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def emit(args, value: Any, render_human) -> None:
    """Print ``value`` as JSON or call ``render_human(value)`` depending on context."""
    json_flag = getattr(args, "json", False)
    pretty_flag = getattr(args, "pretty", False)
    if is_json(json_flag, pretty_flag):
        print_json(value, is_pretty(json_flag, pretty_flag))
    else:
        render_human(value)


def rows_from(records: List[dict], columns: Sequence[str]) -> List[List[str]]:
    return [[cell(record, column) for column in columns] for record in records]
