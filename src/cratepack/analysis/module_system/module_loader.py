"""
Module Loader

Resolves module declarations to files and parses them into SourceFiles.

Rust Pattern: rustc_expand::module (file-backed `mod x;` loading)

This class handles:
- Resolution through PathResolver (both conventions, fatal on none/both)
- Parsing through the shared Parser
- Per-run memoization, so a file is read and parsed at most once
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

from .path_resolver import PathResolver
from ..module_path import ModulePath
from ...shared.errors import ParseError
from ...shared.nodes import SourceFile
from ...utils.config import DEFAULT_FILE_ENCODING
from ...utils.io_utils import read_source_file

logger = logging.getLogger(__name__)


@lru_cache(maxsize=256)
def _parse_source(source_code: str, source_file: str) -> SourceFile:
    """Parse source string, cached across runs. Callers never mutate the result."""
    return _shared_parser().parse(source_code, source_file)


@lru_cache(maxsize=1)
def _shared_parser():
    from ...frontend.parser import Parser
    return Parser()


def clear_parse_cache() -> None:
    """Drop cached parse results (tests that rewrite files in place)."""
    _parse_source.cache_clear()


@dataclass
class LoadedModule:
    """A resolved, parsed module file."""
    module_path: ModulePath
    path: Path
    source_file: SourceFile
    child_dir: Path


class ModuleLoader:
    """
    Loads module files for one bundling run.

    load() never guesses: a missing or ambiguous module raises, and a file
    that does not parse raises ParseError naming it.
    """

    def __init__(
        self,
        path_resolver: Optional[PathResolver] = None,
        encoding: str = DEFAULT_FILE_ENCODING,
    ):
        self.path_resolver = path_resolver if path_resolver is not None else PathResolver()
        self.encoding = encoding
        self.loaded_files: Dict[Path, SourceFile] = {}

    def load_file(self, path: Path) -> SourceFile:
        """Read and parse one file (memoized per loader)."""
        key = path.resolve()
        cached = self.loaded_files.get(key)
        if cached is not None:
            return cached
        logger.debug(f"Loading module file: {path}")
        source = read_source_file(path, encoding=self.encoding)
        parsed = _parse_source(source, str(path))
        self.loaded_files[key] = parsed
        return parsed

    def load(self, directory: Path, name: str, module_path: ModulePath) -> LoadedModule:
        """
        Load module `name` declared in `directory`.

        Raises:
            ModuleNotFoundError / AmbiguousModuleError: resolution failed
            ParseError: the module file is malformed
        """
        path = self.path_resolver.resolve(directory, name, module_path)
        try:
            source_file = self.load_file(path)
        except ParseError as e:
            raise e.with_context(module_path=str(module_path))
        return LoadedModule(
            module_path=module_path,
            path=path,
            source_file=source_file,
            child_dir=self.path_resolver.child_directory(directory, name),
        )

    def load_path(self, library_dir: Path, module_path: ModulePath) -> LoadedModule:
        """Load a module by its full path from the library root."""
        path, child_dir = self.path_resolver.resolve_path(library_dir, module_path)
        source_file = self.load_file(path)
        return LoadedModule(module_path=module_path, path=path, source_file=source_file, child_dir=child_dir)
