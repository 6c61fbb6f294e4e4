"""
Escaping of values interpolated into generated installer scripts.

Every printer name, address or path that ends up inside a generated script
goes through escape_literal() with the syntax of the place it lands in.
There is no other escaping anywhere in the installer builders.

Control characters (newlines, tabs, NUL, Unicode line separators) are
replaced by a space first: they would split a script line in any of the
target syntaxes.
"""

from __future__ import annotations

import re
import shlex
import unicodedata
from enum import Enum


class ScriptSyntax(Enum):
    """Destination syntax of an interpolated value."""

    POWERSHELL = "powershell"
    """Single-quoted PowerShell string literal, quotes included."""

    BATCH = "batch"
    """Bare text on a cmd.exe line (echo, title, rem)."""

    POSIX_SHELL = "posix_shell"
    """Single-quoted POSIX shell word, quotes included."""


# Characters PowerShell accepts as a single quote (ASCII plus typographic)
_POWERSHELL_QUOTES = "'‘’‚‛"

# cmd.exe metacharacters escaped with a caret outside of quotes
_BATCH_SPECIAL = "^&|<>()\""

_SAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9_-]")


def strip_control_characters(value: str) -> str:
    """Replace control and line/paragraph separator characters by spaces."""
    return "".join(
        " " if unicodedata.category(ch) in ("Cc", "Zl", "Zp") else ch
        for ch in value
    )


def _powershell_literal(value: str) -> str:
    escaped = "".join(ch + ch if ch in _POWERSHELL_QUOTES else ch for ch in value)
    return f"'{escaped}'"


def _batch_text(value: str) -> str:
    out = []
    for ch in value:
        if ch == "%":
            out.append("%%")
        elif ch in _BATCH_SPECIAL:
            out.append("^" + ch)
        else:
            out.append(ch)
    return "".join(out)


_ESCAPERS = {
    ScriptSyntax.POWERSHELL: _powershell_literal,
    ScriptSyntax.BATCH: _batch_text,
    ScriptSyntax.POSIX_SHELL: shlex.quote,
}


def escape_literal(value, syntax: ScriptSyntax) -> str:
    """
    Escape a value for embedding in a generated script.

    Args:
        value: Value to embed (converted with str())
        syntax: Where the value lands

    Returns:
        Text that the destination syntax reads back as exactly the
        control-stripped value, never as script code.

    Example:
        >>> escape_literal("Bob's HP", ScriptSyntax.POWERSHELL)
        "'Bob''s HP'"
    """
    return _ESCAPERS[syntax](strip_control_characters(str(value)))


def safe_filename(name: str) -> str:
    """File-name stem for a downloaded installer (letters, digits, _ and -)."""
    return _SAFE_FILENAME_RE.sub("_", strip_control_characters(name).strip()) or "printer"
