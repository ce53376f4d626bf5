"""Module system: path resolution and module loading."""

from .path_resolver import PathResolver
from .module_loader import ModuleLoader, LoadedModule, clear_parse_cache

__all__ = [
    'PathResolver',
    'ModuleLoader',
    'LoadedModule',
    'clear_parse_cache',
]
