"""
Bundling context and phase markers

Rust Pattern: typestate (zero-sized phase markers carried by the bundler)
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from ..analysis.module_path import UsedModuleSet
from ..shared.errors import ErrorReporter
from ..shared.nodes import Attribute, Item
from ..utils.config import BundlerConfig


class Phase(Enum):
    """Human-readable phase names used in diagnostics."""
    ANALYZE_ENTRY = "analyze-entry"
    EXPAND_LIBRARY = "expand-library"
    COMPLETED = "completed"


class BundleContext:
    """
    Mutable state for one run, owned by exactly one phase at a time.

    The bundler hands the context from phase to phase; nothing else keeps a
    reference to it.
    """

    def __init__(self, config: BundlerConfig, problem_id: str):
        self.config = config
        self.problem_id = problem_id
        self.alias = config.alias
        self.src: Path = config.entry_path(problem_id)
        self.dst: Path = config.output_path(problem_id)
        self.library_path: Path = config.library_path
        self.reporter = ErrorReporter({})
        self.warnings: List[str] = []
        self.source_files: Dict[str, str] = self.reporter.source_files
        self.used_modules: Optional[UsedModuleSet] = None


@dataclass
class ExpandedLibrary:
    """The library root after expansion: what goes inside the wrapper."""
    inner_attrs: List[Attribute] = field(default_factory=list)
    items: List[Item] = field(default_factory=list)


# -- phase markers -----------------------------------------------------------

@dataclass(frozen=True)
class AnalyzeEntry:
    phase = Phase.ANALYZE_ENTRY


@dataclass(frozen=True)
class ExpandLibrary:
    used_modules: UsedModuleSet
    base_path: Path
    phase = Phase.EXPAND_LIBRARY


@dataclass(frozen=True)
class Completed:
    expanded: Optional[ExpandedLibrary] = None
    phase = Phase.COMPLETED
