"""
Cratepack utilities package
"""

from .config import BundlerConfig
from .io_utils import read_source_file, write_output_file, append_output_file

__all__ = ["BundlerConfig", "read_source_file", "write_output_file", "append_output_file"]
