"""
Crate Tree Transformer
Converts the Lark parse tree into the structural tree of shared.nodes
"""

import logging
from typing import Any, List, Optional, Sequence, Tuple, Union

from lark import Transformer, v_args
from lark.lexer import Token
from typing_extensions import TypeAlias

from ...shared.nodes import (
    Attribute, Item, MacroRulesDef, ModDecl, OpaqueItem, UseDecl, UseGlob,
    UseGroup, UseName, UsePath, UseRename, Visibility,
)
from ...shared.source_location import SourceLocation

# Lark Meta object contains location information
LarkMeta: TypeAlias = Any
TokenTree: TypeAlias = List[Union[Token, list]]
Element: TypeAlias = Union[Attribute, Item]

logger: logging.Logger = logging.getLogger(__name__)


def _attribute_name(group: TokenTree) -> Optional[str]:
    """Name of `[name ...]` when the path is a single identifier."""
    if len(group) < 3 or not isinstance(group[1], Token) or group[1].type != "IDENT":
        return None
    follower = group[2]
    if isinstance(follower, Token) and follower.type == "COLONCOLON":
        return None
    return str(group[1])


def _has_blank_line(gap: str) -> bool:
    return any(not line.strip() for line in gap.split("\n")[1:-1])


@v_args(inline=True, meta=True)
class CrateTransformer(Transformer):
    """
    Builds SourceFile contents from a parse tree.

    `current_file` and `source` must be set before `transform()`; the source
    text is needed to keep attribute text and blank-line layout.
    """

    def __init__(self):
        super().__init__()
        self.current_file = "<unknown>"
        self.source = ""

    def _location(self, meta: LarkMeta) -> SourceLocation:
        return SourceLocation(
            file=self.current_file,
            line=meta.line,
            column=meta.column,
            start=meta.start_pos,
            end=meta.end_pos,
            end_line=meta.end_line,
            end_column=meta.end_column,
        )

    def _token_location(self, tok: Token) -> SourceLocation:
        return SourceLocation(
            file=self.current_file,
            line=tok.line,
            column=tok.column,
            start=tok.start_pos,
            end=tok.end_pos,
            end_line=tok.end_line,
            end_column=tok.end_column,
        )

    def _split_elements(self, elements: Sequence[Element]) -> Tuple[List[Attribute], List[Item]]:
        inner_attrs: List[Attribute] = []
        items: List[Item] = []
        prev_end: Optional[int] = None
        for element in elements:
            if isinstance(element, Attribute):
                inner_attrs.append(element)
                prev_end = element.location.end
                continue
            if prev_end is not None:
                element.blank_line_before = _has_blank_line(self.source[prev_end:element.span_start])
            items.append(element)
            prev_end = element.location.end
        return inner_attrs, items

    # -- file and attributes ----------------------------------------------

    def start(self, meta, *elements):
        return self._split_elements(elements)

    def inner_attr(self, meta, *children):
        if len(children) == 1:
            doc = children[0]
            return Attribute(self._token_location(doc), str(doc), "doc", is_inner=True, is_doc_comment=True)
        location = self._location(meta)
        text = self.source[location.start:location.end]
        return Attribute(location, text, _attribute_name(children[-1]), is_inner=True)

    def outer_attr(self, meta, *children):
        if len(children) == 1:
            doc = children[0]
            return Attribute(self._token_location(doc), str(doc), "doc", is_doc_comment=True)
        location = self._location(meta)
        text = self.source[location.start:location.end]
        return Attribute(location, text, _attribute_name(children[-1]))

    # -- items ------------------------------------------------------------

    def item(self, meta, *children):
        node = children[-1]
        node.attrs = list(children[:-1])
        return node

    def item_core(self, meta, *children):
        node = children[-1]
        if len(children) == 2:
            node.visibility = children[0]
        node.location = self._location(meta)
        return node

    def visibility(self, meta, *children):
        location = self._location(meta)
        return Visibility(location, self.source[location.start:location.end])

    def use_decl(self, meta, *children):
        leading = isinstance(children[1], Token) and children[1].type == "COLONCOLON"
        tree = next(c for c in children if not isinstance(c, Token))
        return UseDecl(self._location(meta), tree=tree, leading_colons=leading)

    def mod_decl(self, meta, *children):
        name = str(children[1])
        if children[2].type == "SEMI":
            return ModDecl(self._location(meta), name=name)
        inner_attrs, items = self._split_elements(children[3:-1])
        return ModDecl(self._location(meta), name=name, items=items, inner_attrs=inner_attrs)

    def macro_rules_def(self, meta, *children):
        return MacroRulesDef(self._location(meta), name=str(children[2]))

    def value_item(self, meta, *children):
        return OpaqueItem(self._location(meta), keyword=str(children[0]))

    def block_item(self, meta, *children):
        return OpaqueItem(self._location(meta), keyword=str(children[0]))

    # -- use trees --------------------------------------------------------

    def use_path(self, meta, segment, _sep, tree):
        return UsePath(str(segment), tree)

    def use_name(self, meta, segment):
        return UseName(str(segment))

    def use_rename(self, meta, segment, _as, alias):
        return UseRename(str(segment), str(alias))

    def use_glob(self, meta, _star):
        return UseGlob()

    def use_group(self, meta, *children):
        return UseGroup([c for c in children if not isinstance(c, Token)])

    # -- token trees ------------------------------------------------------

    def paren_group(self, meta, *children):
        return list(children)

    def bracket_group(self, meta, *children):
        return list(children)

    def brace_group(self, meta, *children):
        return list(children)
