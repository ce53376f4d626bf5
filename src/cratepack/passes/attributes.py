"""
Annotation stripping.

Documentation, lint-allow, conditional-compilation and warning-level
attributes are dropped; everything else passes through verbatim. The rule
matches on the attribute path being exactly one of those identifiers, so
`#[cfg_attr(...)]` or `#[rustfmt::skip]` survive.
"""

import logging
from typing import Iterable, List, Optional

from ..shared.nodes import Attribute, Edit, SourceFile
from ..utils.config import STRIPPED_ATTRIBUTES

logger = logging.getLogger(__name__)

DOC_COMMENT_TOKENS = ("OUTER_DOC", "INNER_DOC", "OUTER_BLOCK_DOC", "INNER_BLOCK_DOC")


def is_stripped(attr: Attribute) -> bool:
    return attr.is_doc_comment or attr.name in STRIPPED_ATTRIBUTES


def filter_attributes(attrs: Iterable[Attribute]) -> List[Attribute]:
    return [attr for attr in attrs if not is_stripped(attr)]


def nested_attribute_edits(source_file: SourceFile, start: int, end: int) -> List[Edit]:
    """
    Deletions for stripped attributes inside an item's body.

    An attribute alone on its line takes the whole line with it, so removed
    doc blocks leave no blank gaps behind.
    """
    tokens = source_file.tokens_in(start, end)
    edits: List[Edit] = []
    i = 0
    while i < len(tokens):
        tok = tokens[i]
        if tok.type in DOC_COMMENT_TOKENS:
            edits.append(_deletion(source_file.source, tok.start_pos, tok.end_pos))
            i += 1
            continue
        if tok.type == "HASH":
            close = _attribute_close(tokens, i)
            if close is not None:
                open_index = i + 2 if tokens[i + 1].type == "BANG" else i + 1
                if _nested_name(tokens, open_index) in STRIPPED_ATTRIBUTES:
                    edits.append(_deletion(source_file.source, tok.start_pos, tokens[close].end_pos))
                i = close + 1
                continue
        i += 1
    return edits


def _attribute_close(tokens, hash_index: int) -> Optional[int]:
    """Index of the `]` closing the attribute starting at `hash_index`."""
    j = hash_index + 1
    if j < len(tokens) and tokens[j].type == "BANG":
        j += 1
    if j >= len(tokens) or tokens[j].type != "LSQB":
        return None
    depth = 0
    for k in range(j, len(tokens)):
        if tokens[k].type == "LSQB":
            depth += 1
        elif tokens[k].type == "RSQB":
            depth -= 1
            if depth == 0:
                return k
    return None


def _nested_name(tokens, open_index: int) -> Optional[str]:
    name = tokens[open_index + 1] if open_index + 1 < len(tokens) else None
    if name is None or name.type != "IDENT":
        return None
    follower = tokens[open_index + 2] if open_index + 2 < len(tokens) else None
    if follower is not None and follower.type == "COLONCOLON":
        return None
    return str(name)


def _deletion(source: str, start: int, end: int) -> Edit:
    line_start = source.rfind("\n", 0, start) + 1
    line_end = source.find("\n", end)
    if line_end == -1:
        line_end = len(source)
    if not source[line_start:start].strip() and not source[end:line_end].strip():
        return Edit(line_start, min(line_end + 1, len(source)))
    stop = end
    while stop < line_end and source[stop] in " \t":
        stop += 1
    return Edit(start, stop)
