"""
Centralized file I/O utilities.

- Single place for encoding handling
- Use Path.read_text()/write_text() consistently (no raw open/read)
"""

from pathlib import Path
from typing import Union

from .config import DEFAULT_FILE_ENCODING


def read_source_file(path: Union[Path, str], encoding: str = DEFAULT_FILE_ENCODING) -> str:
    """Read source file with standard encoding."""
    p = Path(path) if not isinstance(path, Path) else path
    return p.read_text(encoding=encoding)


def write_output_file(path: Union[Path, str], text: str, encoding: str = DEFAULT_FILE_ENCODING) -> None:
    """Create or truncate the output file with the given text."""
    p = Path(path) if not isinstance(path, Path) else path
    p.write_text(text, encoding=encoding)


def append_output_file(path: Union[Path, str], text: str, encoding: str = DEFAULT_FILE_ENCODING) -> None:
    """Append text to an already written output file."""
    p = Path(path) if not isinstance(path, Path) else path
    with p.open("a", encoding=encoding) as out:
        out.write(text)
