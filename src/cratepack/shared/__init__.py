"""
Shared components: locations, diagnostics and the structural tree.

Rust Pattern: Shared foundational types and utilities
"""

from .source_location import SourceLocation
from .errors import (
    Error, ErrorReporter,
    BundleError, EntryNotFoundError, ModuleResolutionError, ModuleNotFoundError,
    AmbiguousModuleError, ParseError, OutputWriteError, FormatterError,
    CratepackImplementationError, PhaseOrderError,
)
from .nodes import (
    Edit, Attribute, Visibility,
    UsePath, UseName, UseRename, UseGlob, UseGroup, UseTree,
    Item, UseDecl, ModDecl, MacroRulesDef, OpaqueItem, SourceFile,
)

__all__ = [
    'SourceLocation',
    'Error', 'ErrorReporter',
    'BundleError', 'EntryNotFoundError', 'ModuleResolutionError', 'ModuleNotFoundError',
    'AmbiguousModuleError', 'ParseError', 'OutputWriteError', 'FormatterError',
    'CratepackImplementationError', 'PhaseOrderError',
    'Edit', 'Attribute', 'Visibility',
    'UsePath', 'UseName', 'UseRename', 'UseGlob', 'UseGroup', 'UseTree',
    'Item', 'UseDecl', 'ModDecl', 'MacroRulesDef', 'OpaqueItem', 'SourceFile',
]
