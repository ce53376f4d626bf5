"""
Source Location (Span)

Rust Pattern: rustc_span::Span
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SourceLocation:
    """
    Source location (Rust Span pattern).

    Line and column are 1-based and point at the first character of the
    spanned text. `start`/`end` are character offsets into the file text,
    which the emitter uses to slice original source back out.
    """
    file: str
    line: int
    column: int
    start: int = 0
    end: int = 0
    end_line: int = 0
    end_column: int = 0

    def __str__(self) -> str:
        """Format as file:line:column (Rust pattern)"""
        return f"{self.file}:{self.line}:{self.column}"
