"""
Parser

Rust Pattern: rustc_parse
"""

import logging
from pathlib import Path
from typing import Iterable, List

from lark import Lark
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken

from .transformers.base import CrateTransformer
from ..shared.errors import ParseError
from ..shared.nodes import Item, ModDecl, SourceFile
from ..shared.source_location import SourceLocation
from ..utils.config import DEFAULT_PARSER_CACHE_FILE

logger = logging.getLogger(__name__)


class Parser:
    """
    Parser (Rust naming: rustc_parse).

    Turns one source file into a SourceFile: item structure from the LALR
    grammar plus the flat token stream used for token-level rewriting.
    """

    def __init__(self, cache_file: str = DEFAULT_PARSER_CACHE_FILE):
        grammar_path = Path(__file__).parent / "grammar.lark"
        self.parser = Lark.open(
            str(grammar_path),
            start='start',
            parser='lalr',              # Required for caching
            lexer='basic',              # Context-free tokens, reused for rewriting
            cache=cache_file,
            propagate_positions=True,   # Item spans for slicing source text
            maybe_placeholders=False,
        )
        self.transformer = CrateTransformer()

    def parse(self, source: str, source_file: str = "lib.rs") -> SourceFile:
        """
        Parse source code to a SourceFile.

        Raises: ParseError naming the file and the offending position
        """
        try:
            self.transformer.current_file = source_file
            self.transformer.source = source
            tokens = list(self.parser.lex(source))
            tree = self.parser.parse(source)
            inner_attrs, items = self.transformer.transform(tree)
        except UnexpectedInput as e:
            raise ParseError(
                _describe(e, source),
                source_file,
                location=_error_location(e, source, source_file),
                source_code=source,
            ) from e

        parsed = SourceFile(
            path=source_file,
            source=source,
            tokens=tokens,
            inner_attrs=inner_attrs,
            items=items,
        )
        for attr in inner_attrs:
            attr.origin = parsed
        _set_origin(items, parsed)
        logger.debug(f"Parsed {source_file}: {len(items)} items, {len(tokens)} tokens")
        return parsed


def _set_origin(items: Iterable[Item], origin: SourceFile) -> None:
    for item in items:
        item.origin = origin
        for attr in item.attrs:
            attr.origin = origin
        if isinstance(item, ModDecl) and item.items is not None:
            for attr in item.inner_attrs:
                attr.origin = origin
            _set_origin(item.items, origin)


def _describe(e: UnexpectedInput, source: str) -> str:
    if isinstance(e, UnexpectedEOF):
        return "unexpected end of file"
    if isinstance(e, UnexpectedToken):
        if e.token.type == "$END":
            return "unexpected end of file"
        return f"expected item, found `{e.token}`"
    if isinstance(e, UnexpectedCharacters):
        return f"unknown start of token: `{source[e.pos_in_stream]}`"
    return "syntax error"


def _error_location(e: UnexpectedInput, source: str, source_file: str) -> SourceLocation:
    line = getattr(e, "line", -1)
    column = getattr(e, "column", -1)
    if line is None or line < 1:
        lines: List[str] = source.split("\n")
        line = len(lines)
        column = len(lines[-1]) + 1
    return SourceLocation(file=source_file, line=line, column=column)
