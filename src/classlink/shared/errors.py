"""
Error Reporting

Exception types raised by the loader plus the plain-text diagnostic renderer
used for stall reports.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional


# ---------------------------------------------------------------------------
# ANSI color helpers (disabled when NO_COLOR is set)
# ---------------------------------------------------------------------------

def _use_color() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    explicit = os.environ.get("CLASSLINK_COLOR", "").lower()
    if explicit in ("0", "false", "no", "never"):
        return False
    return True

_BOLD   = "\033[1m"
_RED    = "\033[31m"
_BLUE   = "\033[34m"
_CYAN   = "\033[36m"
_YELLOW = "\033[33m"
_RESET  = "\033[0m"

def _style(text: str, *codes: str, color: bool = True) -> str:
    if not color:
        return text
    prefix = "".join(codes)
    return f"{prefix}{text}{_RESET}" if prefix else text


# ---------------------------------------------------------------------------
# Subject label (one per item a diagnostic points at)
# ---------------------------------------------------------------------------

@dataclass
class Label:
    subject: str
    details: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Diagnostic dataclass
# ---------------------------------------------------------------------------

@dataclass
class Diagnostic:
    """A loader diagnostic: a headline, the items it concerns, and annotations."""
    message: str
    code: Optional[str] = None
    severity: str = "error"
    labels: List[Label] = field(default_factory=list)
    help: Optional[str] = None
    note: Optional[str] = None


# ---------------------------------------------------------------------------
# Formatting engine
# ---------------------------------------------------------------------------

def format_diagnostic(diagnostic: Diagnostic, color: Optional[bool] = None) -> str:
    """
    Render a diagnostic in rustc style.

    Example output (plain, no color)::

        error[L0100]: FAILURE TO LOAD CLASSES: 1 class definition pending after 10.0s without progress
         --> App.C
          |   unresolved files: /missing.py
          |
          = note: resolved: App.Leaf
    """
    use_color = _use_color() if color is None else color
    severity_color = _RED if diagnostic.severity == "error" else _YELLOW
    out: List[str] = []

    # ---- header -----------------------------------------------------------
    code_str = f"[{diagnostic.code}]" if diagnostic.code else ""
    out.append(
        _style(f"{diagnostic.severity}{code_str}", _BOLD, severity_color, color=use_color)
        + _style(f": {diagnostic.message}", _BOLD, color=use_color)
    )

    # ---- subjects ---------------------------------------------------------
    gutter = _style("  |", _BOLD, _BLUE, color=use_color)
    for label in diagnostic.labels:
        out.append(_style(" --> ", _BOLD, _BLUE, color=use_color) + label.subject)
        for detail in label.details:
            out.append(f"{gutter}   {detail}")

    _append_annotations(out, diagnostic, use_color)
    return "\n".join(out)


def _append_annotations(out: List[str], diagnostic: Diagnostic, color: bool) -> None:
    if not (diagnostic.help or diagnostic.note):
        return
    out.append(_style("  |", _BOLD, _BLUE, color=color))
    if diagnostic.note:
        out.append(
            _style("  = ", _BOLD, _CYAN, color=color)
            + _style("note: ", _BOLD, color=color)
            + diagnostic.note
        )
    if diagnostic.help:
        out.append(
            _style("  = ", _BOLD, _CYAN, color=color)
            + _style("help: ", _BOLD, color=color)
            + diagnostic.help
        )


# ============================================================================
# Exception Classes
# ============================================================================

class ClasslinkError(Exception):
    """Base exception for all classlink errors"""
    def __init__(self, message: str, error_code: str = "L0000"):
        super().__init__(message)
        self.message = message
        self.error_code = error_code

    def __str__(self):
        return f"[{self.error_code}] {self.message}"


class DefinitionError(ClasslinkError):
    """
    A class definition was rejected at submission.

    Raised synchronously for:
    - a manifest without a 'class' key (or an empty name)
    - a second definition for a name that is already known
    - malformed manifest values ('requires' not a list of names, both 'factory' and 'value')
    """
    def __init__(self, message: str, class_name: Optional[str] = None):
        super().__init__(message, error_code="L0001")
        self.class_name = class_name


class ConfigError(ClasslinkError):
    """Invalid loader configuration value."""
    def __init__(self, message: str):
        super().__init__(message, error_code="L0002")
