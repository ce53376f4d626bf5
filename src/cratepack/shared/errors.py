"""
Error Reporting

Rust Pattern: rustc_errors::Diagnostic
"""

import os
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .source_location import SourceLocation


# ---------------------------------------------------------------------------
# ANSI color helpers (disabled when NO_COLOR is set)
# ---------------------------------------------------------------------------

def _use_color() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    explicit = os.environ.get("CRATEPACK_COLOR", "").lower()
    if explicit in ("0", "false", "no", "never"):
        return False
    if explicit in ("1", "true", "yes", "always"):
        return True
    return sys.stderr.isatty()

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
# Diagnostic dataclass
# ---------------------------------------------------------------------------

@dataclass
class Error:
    """
    One bundler diagnostic.

    Rust Pattern: rustc_errors::Diagnostic
    """
    message: str
    location: Optional[SourceLocation] = None
    code: Optional[str] = None
    level: str = "error"
    label: Optional[str] = None
    help: Optional[str] = None
    notes: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Formatting engine
# ---------------------------------------------------------------------------

def _format_diagnostic(
    error: Error,
    source_files: Dict[str, str],
    color: bool = False,
) -> str:
    """
    Render a single diagnostic in rustc style.

    Example output (plain, no color)::

        error: unexpected token `}`
         --> src/math/gcd.rs:3:1
          |
        3 | }
          | ^ expected an item
          |
          = note: phase: expand-library
    """
    level_codes = (_BOLD, _RED) if error.level == "error" else (_BOLD, _YELLOW)
    code_str = f"[{error.code}]" if error.code else ""
    out: List[str] = [
        _style(f"{error.level}{code_str}", *level_codes, color=color)
        + _style(f": {error.message}", _BOLD, color=color)
    ]

    loc = error.location
    gw = 1
    if loc is not None:
        source = source_files.get(loc.file)
        src_lines = source.split("\n") if source is not None else []
        has_line = 0 < loc.line <= len(src_lines)
        gw = len(str(loc.line)) if has_line else 1
        out.append(_style(" " * gw + "--> ", _BOLD, _BLUE, color=color) + str(loc))
        if has_line:
            code_line = src_lines[loc.line - 1]
            col_start = max(loc.column, 1) - 1
            if loc.end_line == loc.line and loc.end_column > loc.column:
                span_len = loc.end_column - loc.column
            else:
                span_len = _guess_span(code_line, col_start)
            label = f" {error.label}" if error.label else ""
            bar = _style(" " * (gw + 1) + "|", _BOLD, _BLUE, color=color)
            out.append(bar)
            out.append(_style(str(loc.line).rjust(gw) + " | ", _BOLD, _BLUE, color=color) + code_line)
            carets = " " * col_start + "^" * max(1, span_len) + label
            out.append(_style(" " * (gw + 1) + "| ", _BOLD, _BLUE, color=color)
                       + _style(carets, *level_codes, color=color))

    _append_annotations(out, error, gw, color)
    return "\n".join(out)


def _guess_span(code_line: str, col_start: int) -> int:
    """Guess token length when end_column is unavailable."""
    rest = code_line[col_start:]
    length = 0
    for ch in rest:
        if ch in (" ", "\t", ";", ",", ")", "]", "}"):
            break
        length += 1
    return max(1, length)


def _append_annotations(out: List[str], error: Error, gw: int, color: bool) -> None:
    if not (error.help or error.notes):
        return
    pad = " " * (gw + 1)
    if error.location is not None:
        out.append(_style(pad + "|", _BOLD, _BLUE, color=color))
    if error.help:
        out.append(_style(f"{pad}= ", _BOLD, _CYAN, color=color)
                   + _style("help: ", _BOLD, color=color) + error.help)
    for note in error.notes:
        out.append(_style(f"{pad}= ", _BOLD, _CYAN, color=color)
                   + _style("note: ", _BOLD, color=color) + note)


# ---------------------------------------------------------------------------
# ErrorReporter
# ---------------------------------------------------------------------------

class ErrorReporter:
    """
    Collects and renders diagnostics.

    Rust Pattern: rustc_errors::Emitter
    """

    def __init__(self, source_files: Optional[Dict[str, str]] = None):
        self.source_files = source_files if source_files is not None else {}
        self.errors: List[Error] = []
        self.warnings: List[Error] = []

    def report(self, diagnostic: Error) -> None:
        if diagnostic.level == "warning":
            self.warnings.append(diagnostic)
        else:
            self.errors.append(diagnostic)

    def report_exception(self, exc: "BundleError") -> None:
        if exc.source_code is not None and exc.location is not None:
            self.source_files.setdefault(exc.location.file, exc.source_code)
        self.report(exc.to_diagnostic())

    def format_error(self, error: Error, color: Optional[bool] = None) -> str:
        use_color = color if color is not None else _use_color()
        return _format_diagnostic(error, self.source_files, color=use_color)

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def format_all(self, prefix: str = "", color: Optional[bool] = None) -> str:
        """Warnings then errors, each rendered block starting with `prefix`."""
        use_color = color if color is not None else _use_color()
        return "\n".join(prefix + self.format_error(diagnostic, color=use_color)
                         for diagnostic in self.warnings + self.errors)



# ============================================================================
# Exception Classes
# ============================================================================

class BundleError(Exception):
    """
    Base exception for every fatal bundling condition.

    Carries the phase and the library module path that were active when the
    error surfaced, so a single message locates the cause.
    """
    error_code: Optional[str] = None
    level = "error"

    def __init__(self,
                 message: str,
                 location: Optional[SourceLocation] = None,
                 phase: Optional[str] = None,
                 module_path: Optional[str] = None,
                 source_code: Optional[str] = None,
                 help: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.location = location
        self.phase = phase
        self.module_path = module_path
        self.source_code = source_code
        self.help_text = help

    def with_context(self, phase: Optional[str] = None, module_path: Optional[str] = None) -> "BundleError":
        """Attach phase/module context unless a deeper frame already did."""
        if self.phase is None:
            self.phase = phase
        if self.module_path is None:
            self.module_path = module_path
        return self

    def context_notes(self) -> List[str]:
        notes = []
        if self.phase:
            notes.append(f"phase: {self.phase}")
        if self.module_path:
            notes.append(f"module: {self.module_path}")
        return notes

    def to_diagnostic(self) -> Error:
        return Error(
            message=self.message,
            location=self.location,
            code=self.error_code,
            level=self.level,
            help=self.help_text,
            notes=self.context_notes(),
        )

    def __str__(self):
        source_files: Dict[str, str] = {}
        if self.source_code is not None and self.location is not None:
            source_files[self.location.file] = self.source_code
        return _format_diagnostic(self.to_diagnostic(), source_files, color=False)


class EntryNotFoundError(BundleError):
    """The requested entry unit does not resolve to a file."""


class ModuleResolutionError(BundleError):
    """An allowed module could not be mapped to exactly one file."""

    def __init__(self, message: str, candidates: Sequence[str] = (), **kwargs):
        super().__init__(message, **kwargs)
        self.candidates = list(candidates)


class ModuleNotFoundError(ModuleResolutionError):
    """Neither on-disk convention resolves"""
    error_code = "E0583"


class AmbiguousModuleError(ModuleResolutionError):
    """Both on-disk conventions resolve"""
    error_code = "E0761"


class ParseError(BundleError):
    """A source file is not syntactically valid"""

    def __init__(self, message: str, source_file: str, location: Optional[SourceLocation] = None, **kwargs):
        super().__init__(message, location=location, **kwargs)
        self.source_file = source_file


class OutputWriteError(BundleError):
    """The destination cannot be created or written."""


class FormatterError(BundleError):
    """The cosmetic formatter step failed; the written file stays valid."""
    level = "warning"


class CratepackImplementationError(Exception):
    """
    Error in the bundler itself (not in the crate being bundled).

    Never use this for problems in user sources - use BundleError instead.
    """
    def __init__(self, message: str, error_code: str = "E9999"):
        super().__init__(message)
        self.message = message
        self.error_code = error_code

    def __str__(self):
        return f"[{self.error_code}] {self.message}"


class PhaseOrderError(CratepackImplementationError):
    """A bundler phase was invoked on a consumed or wrong-phase bundler."""
