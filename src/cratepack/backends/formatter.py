"""
External formatter post-pass.

Cosmetic only: the bundle is already valid when this runs, so failures are
reported as warnings and the written file is left as it is.
"""

import logging
import subprocess
from pathlib import Path
from typing import Sequence

from ..shared.errors import FormatterError
from ..utils.config import DEFAULT_FORMATTER

logger = logging.getLogger(__name__)


class RustFormatter:
    def __init__(self, command: Sequence[str] = (DEFAULT_FORMATTER,)):
        self.command = list(command)

    def format_file(self, path: Path) -> None:
        """
        Run the formatter on `path` in place.

        Raises:
            FormatterError: executable missing or non-zero exit
        """
        argv = [*self.command, str(path)]
        logger.debug(f"Running formatter: {' '.join(argv)}")
        try:
            completed = subprocess.run(argv, capture_output=True, text=True, check=False)
        except OSError as e:
            raise FormatterError(
                f"formatter `{self.command[0]}` could not be started: {e}",
                help="install it or run without --format",
            ) from e
        if completed.returncode != 0:
            detail = (completed.stderr or completed.stdout).strip()
            message = f"formatter `{self.command[0]}` exited with status {completed.returncode}"
            if detail:
                message = f"{message}: {detail.splitlines()[0]}"
            raise FormatterError(message)
