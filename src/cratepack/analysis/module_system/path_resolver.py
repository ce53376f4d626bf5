"""
Module Path Resolution

Maps a module name declared in a directory to its file, following Rust's
two conventions:
- `d/m.rs`
- `d/m/mod.rs`

Exactly one of them must exist.

Rust Pattern: rustc_expand::module::mod_file_path

This class is stateless and can be shared/reused.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple

from ..module_path import ModulePath
from ...shared.errors import AmbiguousModuleError, ModuleNotFoundError
from ...utils.config import MODULE_FILE_EXTENSION, MODULE_ROOT_STEM

logger = logging.getLogger(__name__)


class PathResolver:
    """
    Pure path resolution for crate modules.

    Resolves module declarations to filesystem paths:
    - `mod gcd;` in src/math.rs  -> src/math/gcd.rs or src/math/gcd/mod.rs
    - `mod math;` in src/lib.rs  -> src/math.rs or src/math/mod.rs
    """

    def __init__(self, extension: str = MODULE_FILE_EXTENSION, root_stem: str = MODULE_ROOT_STEM):
        self.extension = extension
        self.root_stem = root_stem

    def candidates(self, directory: Path, name: str) -> Tuple[Path, Path]:
        """Both conventions, in the order they are tried."""
        return (
            directory / f"{name}{self.extension}",
            directory / name / f"{self.root_stem}{self.extension}",
        )

    def resolve(self, directory: Path, name: str, module_path: Optional[ModulePath] = None) -> Path:
        """
        Resolve module `name` declared in `directory`.

        Raises:
            ModuleNotFoundError: neither convention exists (both paths named)
            AmbiguousModuleError: both conventions exist
        """
        single_file, dir_mod_file = self.candidates(directory, name)
        label = str(module_path) if module_path is not None else name
        has_single = single_file.is_file()
        has_dir_mod = dir_mod_file.is_file()

        if has_single and has_dir_mod:
            raise AmbiguousModuleError(
                f"file for module `{label}` found at both \"{single_file}\" and \"{dir_mod_file}\"",
                candidates=(str(single_file), str(dir_mod_file)),
                module_path=label,
                help="delete or rename one of them to remove the ambiguity",
            )
        if has_single:
            logger.debug(f"PathResolver: {label} -> {single_file}")
            return single_file
        if has_dir_mod:
            logger.debug(f"PathResolver: {label} -> {dir_mod_file}")
            return dir_mod_file

        raise ModuleNotFoundError(
            f"file not found for module `{label}`. Searched: {single_file}, {dir_mod_file}",
            candidates=(str(single_file), str(dir_mod_file)),
            module_path=label,
            help=f"to create the module `{name}`, create file \"{single_file}\" or \"{dir_mod_file}\"",
        )

    def child_directory(self, directory: Path, name: str) -> Path:
        """Directory holding the children of module `name` declared in `directory`."""
        return directory / name

    def resolve_path(self, library_dir: Path, module_path: ModulePath) -> Tuple[Path, Path]:
        """
        Resolve a full module path from the library root, one segment at a time.

        Returns the module file and the directory its own children live in.
        """
        directory = library_dir
        resolved = None
        for prefix in module_path.prefixes():
            resolved = self.resolve(directory, prefix.name, prefix)
            directory = self.child_directory(directory, prefix.name)
        return resolved, directory
