"""
Crate-relative path rewriting.

Once the library is nested inside the wrapper module, `crate::` no longer
names the library root. A module inlined d levels deep reaches the old root
through d `super::` hops (`self` at the library root itself). Macro bodies
expand at call sites of unknown depth, so they route through the wrapper
instead: `$crate::x` becomes `$crate::<alias>::x`.
"""

from typing import Iterable, List, Sequence, Tuple

from lark.lexer import Token

from ..shared.nodes import Edit, SourceFile

Region = Tuple[int, int]


def relative_root(depth: int) -> str:
    """Path prefix that reaches the library root from `depth` levels down."""
    if depth == 0:
        return "self"
    return "::".join(["super"] * depth)


def macro_regions(tokens: Sequence[Token]) -> List[Region]:
    """Spans of `macro_rules! name <group>` definitions within a token stream."""
    regions: List[Region] = []
    i = 0
    while i + 3 < len(tokens):
        if (tokens[i].type == "MACRO_RULES" and tokens[i + 1].type == "BANG"
                and tokens[i + 2].type == "IDENT"):
            close = _group_close(tokens, i + 3)
            if close is not None:
                regions.append((tokens[i].start_pos, tokens[close].end_pos))
                i = close + 1
                continue
        i += 1
    return regions


def _group_close(tokens: Sequence[Token], open_index: int):
    opener = tokens[open_index].type
    closer = {"LBRACE": "RBRACE", "LPAR": "RPAR", "LSQB": "RSQB"}.get(opener)
    if closer is None:
        return None
    depth = 0
    for k in range(open_index, len(tokens)):
        if tokens[k].type == opener:
            depth += 1
        elif tokens[k].type == closer:
            depth -= 1
            if depth == 0:
                return k
    return None


def _within(pos: int, regions: Iterable[Region]) -> bool:
    return any(start <= pos < end for start, end in regions)


def crate_path_edits(
    source_file: SourceFile,
    start: int,
    end: int,
    depth: int,
    alias: str,
    whole_span_is_macro: bool = False,
    skip: Sequence[Edit] = (),
) -> List[Edit]:
    """
    Rewrites for every `crate::` (and, in macros, `$crate::`) in source[start:end].

    `skip` holds deletions already planned for the span; tokens inside them
    are left alone.
    """
    tokens = source_file.tokens_in(start, end)
    regions = [(start, end)] if whole_span_is_macro else macro_regions(tokens)
    removed = [(edit.start, edit.end) for edit in skip]
    edits: List[Edit] = []
    for index, tok in enumerate(tokens):
        if tok.type != "CRATE" or index + 1 >= len(tokens):
            continue
        if tokens[index + 1].type != "COLONCOLON" or _within(tok.start_pos, removed):
            continue
        if _within(tok.start_pos, regions):
            edits.append(Edit(tok.start_pos, tok.end_pos, f"crate::{alias}"))
        elif not _follows_dollar(tokens, index):
            edits.append(Edit(tok.start_pos, tok.end_pos, relative_root(depth)))
    return edits


def _follows_dollar(tokens: Sequence[Token], index: int) -> bool:
    if index == 0:
        return False
    prev = tokens[index - 1]
    return prev.type == "PUNCT" and prev == "$" and prev.end_pos == tokens[index].start_pos
