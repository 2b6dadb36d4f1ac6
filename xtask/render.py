"""
Rendering of tool validation reports.
"""

from __future__ import annotations

import os
import sys
from typing import Any, TextIO

from wcwidth import wcswidth


# Environment options
USE_EMOJI = os.environ.get("XTASK_EMOJI", "1") == "1"
USE_COLOR = os.environ.get("XTASK_COLOR", "1") == "1"

# ANSI color codes
GREEN = "\033[32m"
RED = "\033[31m"
RESET = "\033[0m"

HEADERS = ("state", "tool", "binary", "detail")


def status_icon(ok: bool) -> str:
    if not USE_EMOJI:
        return "✓" if ok else "x"
    return "✅" if ok else "❌"


def colorize(text: str, color: str) -> str:
    """Apply color to text, or return it unchanged if colors are disabled."""
    if not USE_COLOR or not text:
        return text
    return f"{color}{text}{RESET}"


def display_width(text: str) -> int:
    """Terminal column width of ``text``; falls back to len() for control chars."""
    width = wcswidth(text)
    return width if width >= 0 else len(text)


def pad(text: str, width: int) -> str:
    return text + " " * max(0, width - display_width(text))


def report_row(tool: str, validation: Any = None, error: Exception | None = None) -> dict[str, Any]:
    """Build a report row from a validation result or the error that replaced it."""
    if error is not None:
        detail = str(error).splitlines()[0]
        return {"tool": tool, "ok": False, "binary": "", "detail": detail}
    binary = validation.binary(tool) if validation is not None else tool
    extras = ""
    if validation is not None and validation.env_vars:
        extras = "sets " + ", ".join(validation.env_vars)
    return {"tool": tool, "ok": True, "binary": binary, "detail": extras}


def render_table(rows: list[dict[str, Any]], out: TextIO | None = None) -> None:
    """Render report rows as an aligned table.

    Args:
        rows: Dictionaries with keys tool, ok, binary, detail
        out: Stream to write to (defaults to stdout)
    """
    cells = [list(HEADERS)]
    for row in rows:
        cells.append([
            status_icon(row["ok"]),
            row["tool"],
            row.get("binary", ""),
            row.get("detail", ""),
        ])

    widths = [max(display_width(line[i]) for line in cells) for i in range(len(HEADERS))]

    for index, line in enumerate(cells):
        color = ""
        if index > 0:
            color = GREEN if rows[index - 1]["ok"] else RED
        rendered = [pad(cell, widths[i]) for i, cell in enumerate(line)]
        rendered[1] = colorize(rendered[1], color) if color else rendered[1]
        print("  ".join(rendered).rstrip(), file=out)


def print_summary(rows: list[dict[str, Any]], out: TextIO | None = None) -> None:
    failed = sum(1 for row in rows if not row["ok"])
    print(f"\n{len(rows)} tools, {len(rows) - failed} usable, {failed} failed", file=out or sys.stderr)
