"""
Structural tree for Rust source files.

The tree is deliberately shallow: it models what bundling needs (attributes,
visibility, `use` trees and `mod` nesting) and keeps every other item as an
opaque span of the original file. Emission slices the original text back out
of `SourceFile.source`, applying the positional `Edit`s recorded on each item.
"""

from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, List, Optional, Tuple, Union

from lark.lexer import Token

from .source_location import SourceLocation
from ..utils.config import TEST_MARKER


@dataclass(frozen=True)
class Edit:
    """Replace source[start:end] with `replacement` when rendering."""
    start: int
    end: int
    replacement: str = ""


@dataclass
class Attribute:
    """Outer (`#[...]`, `///`) or inner (`#![...]`, `//!`) attribute."""
    location: SourceLocation
    text: str
    name: Optional[str]  # set only for single-identifier paths
    is_inner: bool = False
    is_doc_comment: bool = False
    origin: Optional["SourceFile"] = field(default=None, repr=False, compare=False)

    @property
    def is_test_marker(self) -> bool:
        if self.is_inner or self.is_doc_comment:
            return False
        return "".join(self.text.split()) == TEST_MARKER


@dataclass
class Visibility:
    location: SourceLocation
    text: str


# ---------------------------------------------------------------------------
# use trees
# ---------------------------------------------------------------------------

@dataclass
class UsePath:
    """`segment::tree`"""
    segment: str
    tree: "UseTree"


@dataclass
class UseName:
    name: str


@dataclass
class UseRename:
    name: str
    alias: str


@dataclass
class UseGlob:
    pass


@dataclass
class UseGroup:
    items: List["UseTree"] = field(default_factory=list)


UseTree = Union[UsePath, UseName, UseRename, UseGlob, UseGroup]


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------

@dataclass
class Item:
    """
    Base class for top-level items.

    `location` spans the item itself (visibility through the last token);
    outer attributes carry their own locations.
    """
    location: SourceLocation
    attrs: List[Attribute] = field(default_factory=list)
    visibility: Optional[Visibility] = None
    blank_line_before: bool = False
    edits: Tuple[Edit, ...] = ()
    origin: Optional["SourceFile"] = field(default=None, repr=False, compare=False)

    @property
    def span_start(self) -> int:
        if self.attrs:
            return min(self.attrs[0].location.start, self.location.start)
        return self.location.start

    @property
    def is_test_marker(self) -> bool:
        return any(attr.is_test_marker for attr in self.attrs)


@dataclass
class UseDecl(Item):
    tree: Optional[UseTree] = None
    leading_colons: bool = False


@dataclass
class ModDecl(Item):
    """
    `mod name;` (external, `items is None`) or `mod name { ... }`.

    An external declaration that the inliner expanded gets its items filled
    in and `resolved_from` pointing at the file they came from.
    """
    name: str = ""
    items: Optional[List[Item]] = None
    inner_attrs: List[Attribute] = field(default_factory=list)
    resolved_from: Optional[Path] = None

    @property
    def is_external(self) -> bool:
        return self.items is None


@dataclass
class MacroRulesDef(Item):
    name: str = ""


@dataclass
class OpaqueItem(Item):
    """Any other item: fn, struct, impl, const, macro invocation, ..."""
    keyword: str = ""


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------

@dataclass
class SourceFile:
    """One parsed file: its text, token stream and item list."""
    path: str
    source: str
    tokens: List[Token] = field(default_factory=list, repr=False)
    inner_attrs: List[Attribute] = field(default_factory=list)
    items: List[Item] = field(default_factory=list)

    def __post_init__(self):
        self._token_starts = [tok.start_pos for tok in self.tokens]
        self._literal_lines: Optional[FrozenSet[int]] = None
        self._newlines: Optional[List[int]] = None

    def tokens_in(self, start: int, end: int) -> List[Token]:
        """Tokens whose text lies within source[start:end]."""
        lo = bisect_left(self._token_starts, start)
        hi = bisect_left(self._token_starts, end, lo)
        return self.tokens[lo:hi]

    @property
    def literal_lines(self) -> FrozenSet[int]:
        """Line numbers that begin inside a multi-line string literal."""
        if self._literal_lines is None:
            lines = set()
            for tok in self.tokens:
                if tok.type in ("STRING", "RAW_STRING") and tok.end_line > tok.line:
                    lines.update(range(tok.line + 1, tok.end_line + 1))
            self._literal_lines = frozenset(lines)
        return self._literal_lines

    def line_of(self, offset: int) -> int:
        """1-based line number of a character offset."""
        if self._newlines is None:
            self._newlines = [i for i, ch in enumerate(self.source) if ch == "\n"]
        return bisect_left(self._newlines, offset) + 1

    def column_of(self, offset: int) -> int:
        """0-based column of a character offset."""
        return offset - (self.source.rfind("\n", 0, offset) + 1)
