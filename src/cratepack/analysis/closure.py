"""
Import-Closure Analyzer

Computes the set of library module paths the entry unit references:
1. Syntactically, from the entry's `use alias::...` declarations and
   `alias::a::b` paths in its bodies.
2. Transitively (best effort), from library-internal references of every
   module already in the set: `use crate::...`, `self::`/`super::` forms,
   uses rooted at declared child modules, and `crate::`/`$crate::` paths.

The analyzer never fails. Unresolvable or unparseable modules met during
the transitive stage are skipped; the inliner reports them if they are
actually needed.
"""

import logging
from collections import deque
from pathlib import Path
from typing import Deque, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from lark.lexer import Token

from .module_path import ModulePath, UsedModuleSet
from .module_system.module_loader import ModuleLoader
from ..shared.errors import ModuleResolutionError, ParseError
from ..shared.nodes import (
    Item, ModDecl, SourceFile, UseDecl, UseGlob, UseGroup, UseName, UsePath,
    UseRename, UseTree,
)

logger = logging.getLogger(__name__)

_SEGMENT_TOKENS = ("IDENT", "SELF", "SUPER", "CRATE")
DOLLAR_CRATE = "$crate"


def live_items(items: Sequence[Item]) -> List[Item]:
    """Items before the first test-only marker."""
    for index, item in enumerate(items):
        if item.is_test_marker:
            return list(items[:index])
    return list(items)


def path_chains(tokens: Sequence[Token]) -> Iterator[Tuple[List[str], bool]]:
    """
    Yield every maximal `seg::seg::...` chain in a token stream, flagged when
    it ends in `::*`.

    `$crate` is reported as one segment. A chain running into a `::{...}`
    group yields one chain per group member, as a use tree would. Chains
    continuing another expression (`Vec::<T>::new`, `x.0::y`) are not chain
    starts.
    """
    i = 0
    n = len(tokens)
    while i < n:
        tok = tokens[i]
        if tok.type not in _SEGMENT_TOKENS or _continues_path(tokens, i):
            i += 1
            continue
        first = str(tok)
        if tok.type == "CRATE" and i > 0 and tokens[i - 1].type == "PUNCT" and tokens[i - 1] == "$":
            first = DOLLAR_CRATE
        chains, i = _read_chain(tokens, i, first)
        yield from chains


def _read_chain(tokens: Sequence[Token], i: int, head: str) -> Tuple[List[Tuple[List[str], bool]], int]:
    """Chains starting at tokens[i] (spelled `head`) and the index past them."""
    n = len(tokens)
    chain = [head]
    while i + 2 < n and tokens[i + 1].type == "COLONCOLON":
        follower = tokens[i + 2]
        if follower.type in _SEGMENT_TOKENS:
            chain.append(str(follower))
            i += 2
        elif follower.type == "STAR":
            return [(chain, True)], i + 3
        elif follower.type == "LBRACE":
            members, end = _group_members(tokens, i + 2)
            return [(chain + rest, is_glob) for rest, is_glob in members], end
        else:
            break
    return [(chain, False)], i + 1


def _group_members(tokens: Sequence[Token], i: int) -> Tuple[List[Tuple[List[str], bool]], int]:
    """Member paths of the `{...}` group opening at tokens[i], relative to the group."""
    n = len(tokens)
    members: List[Tuple[List[str], bool]] = []
    i += 1
    while i < n and tokens[i].type != "RBRACE":
        tok = tokens[i]
        if tok.type in _SEGMENT_TOKENS:
            chains, i = _read_chain(tokens, i, str(tok))
            for chain, is_glob in chains:
                # `self` names the group's own prefix
                members.append((chain[1:] if chain[0] == "self" else chain, is_glob))
        elif tok.type == "STAR":
            members.append(([], True))
            i += 1
        elif tok.type == "LBRACE":
            nested, i = _group_members(tokens, i)
            members.extend(nested)
        elif tok.type == "AS":
            i += 2
        else:
            i += 1
    return members, i + 1


def _continues_path(tokens: Sequence[Token], i: int) -> bool:
    if i == 0 or tokens[i - 1].type != "COLONCOLON":
        return False
    if i < 2:
        return False
    before = tokens[i - 2]
    return before.type in _SEGMENT_TOKENS or before.type == "PUNCT" and before == ">"


def use_tree_paths(tree: UseTree, prefix: Tuple[str, ...] = ()) -> Iterator[Tuple[Tuple[str, ...], bool]]:
    """
    Flatten a use tree into (segments, is_glob) pairs.

    Name and Rename leaves are included; `self` inside a group denotes its
    parent path; a glob contributes the path up to the glob.
    """
    if isinstance(tree, UsePath):
        yield from use_tree_paths(tree.tree, prefix + (tree.segment,))
    elif isinstance(tree, (UseName, UseRename)):
        if tree.name == "self":
            yield prefix, False
        else:
            yield prefix + (tree.name,), False
    elif isinstance(tree, UseGlob):
        yield prefix, True
    elif isinstance(tree, UseGroup):
        for sub in tree.items:
            yield from use_tree_paths(sub, prefix)


class ImportClosureAnalyzer:
    """
    Builds the UsedModuleSet for one entry unit.

    `alias` is the name the entry uses for the library (`use algorist::...`).
    """

    def __init__(self, alias: str):
        self.alias = alias

    # -- entry unit --------------------------------------------------------

    def analyze(self, entry: SourceFile) -> UsedModuleSet:
        used = UsedModuleSet()
        uses, others = self._partition(entry.items)
        roots = self._roots(entry, uses, others)

        for use in uses:
            self._collect_entry_use(use.tree, roots, used)
        for item in others:
            tokens = entry.tokens_in(item.span_start, item.location.end)
            for chain, is_glob in path_chains(tokens):
                if chain[0] not in roots:
                    continue
                if len(chain) > 1:
                    self._allow(used, ModulePath(tuple(chain[1:])))
                elif is_glob:
                    used.mark_all()

        if used.allow_all:
            logger.info("allow: * (whole library)")
        return used

    def _roots(self, entry: SourceFile, uses: Sequence[UseDecl], others: Sequence[Item]) -> Set[str]:
        """
        The library alias plus every name it is renamed to.

        Renames are gathered before any path is read, so `use alias as x;`
        may follow the uses of `x`.
        """
        renames: List[Tuple[str, str]] = []
        for use in uses:
            renames.extend(_renames(use.tree))
        for item in others:
            tokens = entry.tokens_in(item.span_start, item.location.end)
            for i in range(len(tokens) - 3):
                if (tokens[i].type == "USE" and tokens[i + 1].type == "IDENT"
                        and tokens[i + 2].type == "AS" and tokens[i + 3].type == "IDENT"):
                    renames.append((str(tokens[i + 1]), str(tokens[i + 3])))

        roots = {self.alias}
        changed = True
        while changed:
            changed = False
            for name, alias in renames:
                if name in roots and alias not in roots:
                    logger.debug(f"closure: `{alias}` names the library")
                    roots.add(alias)
                    changed = True
        return roots

    def _partition(self, items: Sequence[Item]) -> Tuple[List[UseDecl], List[Item]]:
        uses: List[UseDecl] = []
        others: List[Item] = []
        for item in items:
            if isinstance(item, UseDecl):
                uses.append(item)
            elif isinstance(item, ModDecl) and item.items is not None:
                inner_uses, inner_others = self._partition(item.items)
                uses.extend(inner_uses)
                others.extend(inner_others)
            else:
                others.append(item)
        return uses, others

    def _collect_entry_use(self, tree: UseTree, roots: Set[str], used: UsedModuleSet) -> None:
        if isinstance(tree, UseGroup):
            for sub in tree.items:
                self._collect_entry_use(sub, roots, used)
            return
        if not isinstance(tree, UsePath) or tree.segment not in roots:
            return
        for segments, is_glob in use_tree_paths(tree.tree):
            if segments:
                self._allow(used, ModulePath(segments))
            elif is_glob:
                used.mark_all()

    def _allow(self, used: UsedModuleSet, path: ModulePath) -> bool:
        if used.add(path):
            logger.info(f"allow: {path}")
            return True
        return False

    # -- library references -----------------------------------------------

    def library_references(self, source_file: SourceFile, module_path: Optional[ModulePath]) -> Set[ModulePath]:
        """
        Library modules referenced from one module file.

        `module_path` is the file's own module path (None for the library
        root). Everything after the test-only marker is ignored.
        """
        base = module_path.segments if module_path is not None else ()
        refs: Set[ModulePath] = set()
        self._collect_references(source_file, source_file.items, base, refs)
        return refs

    def _collect_references(self, source_file: SourceFile, items: Sequence[Item],
                            base: Tuple[str, ...], refs: Set[ModulePath]) -> None:
        items = live_items(items)
        children = {item.name for item in items if isinstance(item, ModDecl)}
        for item in items:
            if isinstance(item, UseDecl):
                for segments, _ in use_tree_paths(item.tree):
                    self._add_reference(segments, base, children, refs)
            elif isinstance(item, ModDecl) and item.items is not None:
                self._collect_references(source_file, item.items, base + (item.name,), refs)
            else:
                tokens = source_file.tokens_in(item.span_start, item.location.end)
                for chain, _ in path_chains(tokens):
                    if len(chain) > 1:
                        self._add_reference(chain, base, children, refs)

    def _add_reference(self, segments: Sequence[str], base: Tuple[str, ...],
                       children: Set[str], refs: Set[ModulePath]) -> None:
        resolved = resolve_relative(segments, base, children)
        if resolved is not None:
            refs.add(resolved)

    # -- transitive stage --------------------------------------------------

    def expand(self, used: UsedModuleSet, loader: ModuleLoader, library_dir: Path) -> UsedModuleSet:
        """Grow `used` to a fixpoint over library-internal references."""
        if used.allow_all:
            return used
        pending: Deque[ModulePath] = deque(used)
        scanned: Set[ModulePath] = set()
        unresolved: Set[ModulePath] = set()

        while pending:
            path = pending.popleft()
            for prefix in path.prefixes():
                if prefix in unresolved:
                    break
                if prefix in scanned:
                    continue
                scanned.add(prefix)
                try:
                    loaded = loader.load_path(library_dir, prefix)
                except (ModuleResolutionError, ParseError, OSError) as e:
                    # Leaves are often items rather than modules.
                    logger.debug(f"closure: not following {prefix}: {e}")
                    unresolved.add(prefix)
                    break
                for ref in sorted(self.library_references(loaded.source_file, prefix)):
                    if self._allow(used, ref):
                        pending.append(ref)
        return used


def resolve_relative(segments: Sequence[str], base: Tuple[str, ...],
                     children: Iterable[str] = ()) -> Optional[ModulePath]:
    """
    Resolve a path written inside module `base` to a library ModulePath.

    Returns None for paths that do not point into the library.
    """
    if not segments:
        return None
    head = segments[0]
    if head in ("crate", DOLLAR_CRATE):
        rest = tuple(segments[1:])
        return ModulePath(rest) if rest else None
    if head in ("self", "super"):
        position = 1 if head == "self" else 0
        prefix = base
        while position < len(segments) and segments[position] == "super":
            if not prefix:
                return None
            prefix = prefix[:-1]
            position += 1
        full = prefix + tuple(segments[position:])
        return ModulePath(full) if full else None
    if head in children:
        return ModulePath(base + tuple(segments))
    return None


def _renames(tree: UseTree) -> Iterator[Tuple[str, str]]:
    """(name, alias) pairs of top-level `use name as alias` forms."""
    if isinstance(tree, UseRename):
        yield tree.name, tree.alias
    elif isinstance(tree, UseGroup):
        for sub in tree.items:
            yield from _renames(sub)
