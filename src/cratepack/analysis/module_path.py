"""
Module paths and the used-module set.

A ModulePath names a library module relative to the library root
(`math::gcd`), never including the wrapper alias. UsedModuleSet stores the
paths the entry unit reaches; "allowed" is derived from it by prefix.
"""

from dataclasses import dataclass
from typing import FrozenSet, Iterable, Iterator, Optional, Set, Tuple

from ..shared.errors import CratepackImplementationError
from ..utils.config import MODULE_SEPARATOR


@dataclass(frozen=True, order=True)
class ModulePath:
    segments: Tuple[str, ...]

    def __post_init__(self):
        if not self.segments:
            raise ValueError("ModulePath must have at least one segment")
        if not isinstance(self.segments, tuple):
            object.__setattr__(self, "segments", tuple(self.segments))

    @classmethod
    def parse(cls, text: str) -> "ModulePath":
        return cls(tuple(part for part in text.split(MODULE_SEPARATOR) if part))

    @classmethod
    def of(cls, *segments: str) -> "ModulePath":
        return cls(tuple(segments))

    @property
    def name(self) -> str:
        return self.segments[-1]

    @property
    def parent(self) -> Optional["ModulePath"]:
        if len(self.segments) == 1:
            return None
        return ModulePath(self.segments[:-1])

    def child(self, name: str) -> "ModulePath":
        return ModulePath(self.segments + (name,))

    def is_prefix_of(self, other: "ModulePath") -> bool:
        """True if self equals other or is one of its ancestors."""
        n = len(self.segments)
        return n <= len(other.segments) and other.segments[:n] == self.segments

    def prefixes(self) -> Iterator["ModulePath"]:
        """Ancestors first, self last."""
        for i in range(1, len(self.segments) + 1):
            yield ModulePath(self.segments[:i])

    def __str__(self) -> str:
        return MODULE_SEPARATOR.join(self.segments)


class UsedModuleSet:
    """
    Set of module paths reached from the entry unit.

    Only discovered paths are stored. `is_allowed` answers "is this path a
    stored path or an ancestor of one"; the prefix index behind it is derived
    from the stored paths and never iterated as members.
    """

    def __init__(self, paths: Iterable[ModulePath] = (), allow_all: bool = False):
        self._paths: Set[ModulePath] = set()
        self._prefix_index: Optional[FrozenSet[Tuple[str, ...]]] = None
        self._frozen = False
        self.allow_all = allow_all
        for path in paths:
            self.add(path)

    def add(self, path: ModulePath) -> bool:
        """Add a path; returns False if it was already present."""
        if self._frozen:
            raise CratepackImplementationError("UsedModuleSet is read-only after analysis")
        if path in self._paths:
            return False
        self._paths.add(path)
        self._prefix_index = None
        return True

    def mark_all(self) -> None:
        if self._frozen:
            raise CratepackImplementationError("UsedModuleSet is read-only after analysis")
        self.allow_all = True

    def freeze(self) -> "UsedModuleSet":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def is_allowed(self, candidate: ModulePath) -> bool:
        if self.allow_all:
            return True
        if self._prefix_index is None:
            self._prefix_index = frozenset(
                p.segments[:i] for p in self._paths for i in range(1, len(p.segments) + 1)
            )
        return candidate.segments in self._prefix_index

    def __contains__(self, path: object) -> bool:
        return path in self._paths

    def __iter__(self) -> Iterator[ModulePath]:
        return iter(sorted(self._paths))

    def __len__(self) -> int:
        return len(self._paths)

    def __repr__(self) -> str:
        shown = ", ".join(str(p) for p in self)
        return f"UsedModuleSet({{{shown}}}{', allow_all' if self.allow_all else ''})"
