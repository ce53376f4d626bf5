"""
Output Emitter

Writes the bundle: the entry unit verbatim, then the expanded library inside
the wrapper module. Library items are sliced from their original files with
their edits applied and re-indented for their new nesting level; lines that
continue a multi-line string literal are left untouched.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from ..passes.base import ExpandedLibrary
from ..shared.errors import OutputWriteError
from ..shared.nodes import Attribute, Edit, Item, ModDecl, SourceFile
from ..utils.config import DEFAULT_FILE_ENCODING, INDENT, WRAPPER_LINT_ALLOWS
from ..utils.io_utils import append_output_file, write_output_file

logger = logging.getLogger(__name__)


def render_span(origin: SourceFile, start: int, end: int,
                edits: Sequence[Edit] = (), level: int = 0) -> List[str]:
    """
    Render source[start:end] of `origin` as output lines at `level`.

    Continuation lines lose the span's original indentation and gain the
    new one.
    """
    source = origin.source
    column = origin.column_of(start)

    # (text, original line) fragments, edits applied
    fragments: List[Tuple[str, int]] = []
    pos = start
    for edit in edits:
        if edit.end <= start or edit.start >= end:
            continue
        if edit.start > pos:
            fragments.append((source[pos:edit.start], origin.line_of(pos)))
        if edit.replacement:
            fragments.append((edit.replacement, origin.line_of(edit.start)))
        pos = max(pos, edit.end)
    if pos < end:
        fragments.append((source[pos:end], origin.line_of(pos)))

    lines: List[List] = [["", origin.line_of(start)]]
    for text, line_no in fragments:
        parts = text.split("\n")
        if not lines[-1][0]:
            lines[-1][1] = line_no
        lines[-1][0] += parts[0]
        for offset, part in enumerate(parts[1:], start=1):
            lines.append([part, line_no + offset])

    prefix = INDENT * level
    literal_lines = origin.literal_lines
    out: List[str] = []
    for index, (text, line_no) in enumerate(lines):
        if index > 0 and line_no in literal_lines:
            out.append(text)
        elif not text.strip():
            out.append("")
        elif index == 0:
            out.append(prefix + text)
        else:
            indent = len(text) - len(text.lstrip(" \t"))
            out.append(prefix + text[min(indent, column):])
    while out and not out[-1]:
        out.pop()
    return out


class OutputEmitter:
    """
    Serializes the bundle to the destination file.

    The entry unit is written first (phase 1), the wrapper module appended
    once the library is expanded (phase 2).
    """

    def __init__(self, alias: str, wrapper_doc: Optional[str] = None,
                 encoding: str = DEFAULT_FILE_ENCODING):
        self.alias = alias
        self.wrapper_doc = wrapper_doc
        self.encoding = encoding

    def write_entry(self, dst: Path, entry: SourceFile) -> None:
        text = entry.source
        if text and not text.endswith("\n"):
            text += "\n"
        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            write_output_file(dst, text, encoding=self.encoding)
        except OSError as e:
            raise OutputWriteError(f"failed to write output file {dst}: {e}") from e
        logger.debug(f"Wrote entry unit to {dst}")

    def append_library(self, dst: Path, library: ExpandedLibrary) -> str:
        text = "\n" + self.render_library(library)
        try:
            append_output_file(dst, text, encoding=self.encoding)
        except OSError as e:
            raise OutputWriteError(f"failed to write output file {dst}: {e}") from e
        return text

    # -- rendering ---------------------------------------------------------

    def render_library(self, library: ExpandedLibrary) -> str:
        lines: List[str] = []
        if self.wrapper_doc is not None:
            doc = self.wrapper_doc.replace("\\", "\\\\").replace('"', '\\"')
            lines.append(f'#[doc = "{doc}"]')
        lines.extend(f"#[allow({lint})]" for lint in WRAPPER_LINT_ALLOWS)
        body = self.render_block(library.inner_attrs, library.items, 1)
        if body:
            lines.append(f"mod {self.alias} {{")
            lines.extend(body)
            lines.append("}")
        else:
            lines.append(f"mod {self.alias} {{}}")
        return "\n".join(lines) + "\n"

    def render_block(self, inner_attrs: Sequence[Attribute], items: Sequence[Item], level: int) -> List[str]:
        out: List[str] = []
        for attr in inner_attrs:
            out.extend(self._render_attribute(attr, level))
        for item in items:
            if item.blank_line_before and out:
                out.append("")
            for attr in item.attrs:
                out.extend(self._render_attribute(attr, level))
            if isinstance(item, ModDecl) and item.items is not None:
                out.extend(self._render_module(item, level))
            else:
                span = item.location
                out.extend(render_span(item.origin, span.start, span.end, item.edits, level))
        return out

    def _render_attribute(self, attr: Attribute, level: int) -> List[str]:
        span = attr.location
        return render_span(attr.origin, span.start, span.end, (), level)

    def _render_module(self, module: ModDecl, level: int) -> List[str]:
        prefix = INDENT * level
        header = f"mod {module.name}"
        if module.visibility is not None:
            span = module.visibility.location
            visibility = " ".join(render_span(module.origin, span.start, span.end, module.edits))
            header = f"{visibility} {header}"
        body = self.render_block(module.inner_attrs, module.items, level + 1)
        if not body:
            return [f"{prefix}{header} {{}}"]
        return [f"{prefix}{header} {{", *body, f"{prefix}}}"]
