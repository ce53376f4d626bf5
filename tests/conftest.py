"""
Pytest configuration and shared fixtures for all Cratepack tests.

Most tests build a throwaway crate under tmp_path: a `src/lib.rs`, its module
files and one or more `src/bin/<id>.rs` entry units.
"""

import sys
import pytest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
from cratepack.analysis.module_system import clear_parse_cache
from cratepack.frontend.parser import Parser
from cratepack.utils.config import BundlerConfig
from tests.test_utils import CrateBuilder


# =============================================================================
# Session-scoped fixtures (shared across all tests)
# =============================================================================

@pytest.fixture(scope="session")
def parser():
    """
    Session-scoped parser shared across ALL tests.

    The parser is stateless between parse() calls and Lark caches the
    grammar, so one instance is enough.
    """
    return Parser()


# =============================================================================
# Function-scoped fixtures (default - one per test)
# =============================================================================

@pytest.fixture
def crate(tmp_path):
    """Empty scratch crate rooted at tmp_path."""
    return CrateBuilder(tmp_path)


@pytest.fixture
def config(tmp_path):
    """Bundler configuration for the scratch crate (formatter off)."""
    return BundlerConfig(root=tmp_path, format_output=False)


@pytest.fixture(autouse=True)
def reset_parse_cache():
    """
    Parse results are cached by (source, path); tests that rewrite a file in
    place at the same path must not see a stale tree.
    """
    yield
    clear_parse_cache()


# =============================================================================
# Markers
# =============================================================================

def pytest_configure(config):
    """Register custom markers for test organization."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
