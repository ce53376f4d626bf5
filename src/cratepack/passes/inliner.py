"""
Recursive Inliner

Walks the library root's items and splices every reachable external module
declaration in place:
- pruned: `mod x;` whose path is not allowed by the used-module set is
  dropped and never loaded
- expanded: allowed modules are loaded, processed one level deeper and
  turned into `mod x { ... }`
- test-only code: the `#[cfg(test)]` item and everything after it in the
  same item list is dropped
- retained items lose stripped attributes and get crate paths rewritten
  for their depth

Parsed trees are never mutated; every retained item is a fresh copy.
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .attributes import filter_attributes, nested_attribute_edits
from .base import ExpandedLibrary
from .path_rewriting import crate_path_edits
from ..analysis.module_path import ModulePath, UsedModuleSet
from ..analysis.module_system.module_loader import ModuleLoader
from ..shared.nodes import Item, MacroRulesDef, ModDecl, SourceFile

logger = logging.getLogger(__name__)


class RecursiveInliner:
    """
    Expands the library tree for one run.

    Loader errors for allowed modules propagate unchanged: any missing,
    ambiguous or malformed module aborts the run.
    """

    def __init__(self, loader: ModuleLoader, used_modules: UsedModuleSet, alias: str):
        self.loader = loader
        self.used_modules = used_modules
        self.alias = alias
        self.expanded: List[ModulePath] = []
        self.pruned: List[ModulePath] = []

    def expand(self, library: SourceFile, library_dir: Path) -> ExpandedLibrary:
        items = self.expand_items(library.items, (), library_dir, 0)
        return ExpandedLibrary(inner_attrs=filter_attributes(library.inner_attrs), items=items)

    def expand_items(self, items: Sequence[Item], base: Tuple[str, ...],
                     directory: Path, depth: int) -> List[Item]:
        """Process one item list whose items sit `depth` levels below the library root."""
        out: List[Item] = []
        for index, item in enumerate(items):
            if item.is_test_marker:
                dropped = len(items) - index
                logger.debug(f"dropping {dropped} test-only item(s) from {item.origin.path}")
                break
            if isinstance(item, ModDecl):
                module = self._expand_module(item, base, directory, depth)
                if module is not None:
                    out.append(module)
            else:
                out.append(self._rewrite(item, depth))
        return out

    def _expand_module(self, decl: ModDecl, base: Tuple[str, ...],
                       directory: Path, depth: int) -> Optional[ModDecl]:
        path = ModulePath(base + (decl.name,))
        header_edits = self._visibility_edits(decl, depth)

        if not decl.is_external:
            items = self.expand_items(decl.items, path.segments, directory / decl.name, depth + 1)
            return replace(
                decl,
                attrs=filter_attributes(decl.attrs),
                inner_attrs=filter_attributes(decl.inner_attrs),
                items=items,
                edits=header_edits,
            )

        if not self.used_modules.is_allowed(path):
            logger.info(f"pruned module: {decl.name} (path: {path})")
            self.pruned.append(path)
            return None

        logger.info(f"module: {decl.name} (path: {path})")
        loaded = self.loader.load(directory, decl.name, path)
        self.expanded.append(path)
        items = self.expand_items(loaded.source_file.items, path.segments, loaded.child_dir, depth + 1)
        return replace(
            decl,
            attrs=filter_attributes(decl.attrs),
            inner_attrs=filter_attributes(loaded.source_file.inner_attrs),
            items=items,
            resolved_from=loaded.path,
            edits=header_edits,
        )

    def _visibility_edits(self, decl: ModDecl, depth: int):
        if decl.visibility is None:
            return ()
        span = decl.visibility.location
        return tuple(crate_path_edits(decl.origin, span.start, span.end, depth, self.alias))

    def _rewrite(self, item: Item, depth: int) -> Item:
        span = item.location
        removed = nested_attribute_edits(item.origin, span.start, span.end)
        rewritten = crate_path_edits(
            item.origin, span.start, span.end, depth, self.alias,
            whole_span_is_macro=isinstance(item, MacroRulesDef),
            skip=removed,
        )
        edits = tuple(sorted(removed + rewritten, key=lambda edit: edit.start))
        return replace(item, attrs=filter_attributes(item.attrs), edits=edits)
