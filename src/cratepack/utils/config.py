"""
Configuration constants and run configuration for the bundler
"""

import os
import shlex
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

# Parser configuration constants (cache under temp dir to avoid cluttering project root)
DEFAULT_PARSER_CACHE_FILE = os.path.join(tempfile.gettempdir(), "cratepack_parser.cache")

# Module resolution constants
MODULE_SEPARATOR = "::"
MODULE_FILE_EXTENSION = ".rs"
MODULE_ROOT_STEM = "mod"

# Crate layout constants
DEFAULT_LIBRARY_ALIAS = "algorist"
ENTRY_DIR = "src/bin"
LIBRARY_ROOT = "src/lib.rs"
OUTPUT_DIR = "bundled"

# Wrapper module metadata
DEFAULT_WRAPPER_DOC = " [Algorist](https://crates.io/crates/algorist) library"
WRAPPER_LINT_ALLOWS = ("dead_code", "unused_imports", "unused_macros")

# Attributes dropped from every retained item (exact single-segment paths)
STRIPPED_ATTRIBUTES = frozenset({"doc", "allow", "cfg", "warn"})
TEST_MARKER = "#[cfg(test)]"

# Emission
INDENT = "    "

# External formatter
DEFAULT_FORMATTER = "rustfmt"

# File encoding constants
DEFAULT_FILE_ENCODING = "utf-8"

_TRUTHY = ("1", "true", "yes", "on")


@dataclass
class BundlerConfig:
    """Settings for one bundling run."""
    root: Path = field(default_factory=Path.cwd)
    alias: str = DEFAULT_LIBRARY_ALIAS
    wrapper_doc: Optional[str] = DEFAULT_WRAPPER_DOC
    follow_library_imports: bool = True
    format_output: bool = False
    formatter_command: List[str] = field(default_factory=lambda: [DEFAULT_FORMATTER])
    encoding: str = DEFAULT_FILE_ENCODING

    def __post_init__(self):
        if not isinstance(self.root, Path):
            self.root = Path(self.root)

    @classmethod
    def from_env(cls, root: Optional[Union[Path, str]] = None) -> "BundlerConfig":
        """Build a config from CRATEPACK_* environment variables."""
        config = cls(root=Path(root) if root is not None else Path.cwd())
        alias = os.environ.get("CRATEPACK_ALIAS")
        if alias:
            config.alias = alias
        fmt = os.environ.get("CRATEPACK_FORMAT", "").lower()
        if fmt:
            config.format_output = fmt in _TRUTHY
        formatter = os.environ.get("CRATEPACK_FORMATTER")
        if formatter:
            config.formatter_command = shlex.split(formatter)
        return config

    @property
    def library_path(self) -> Path:
        return self.root / LIBRARY_ROOT

    @property
    def library_dir(self) -> Path:
        return self.library_path.parent

    @property
    def output_dir(self) -> Path:
        return self.root / OUTPUT_DIR

    def entry_path(self, problem_id: str) -> Path:
        return self.root / ENTRY_DIR / f"{problem_id}{MODULE_FILE_EXTENSION}"

    def output_path(self, problem_id: str) -> Path:
        return self.output_dir / f"{problem_id}{MODULE_FILE_EXTENSION}"
