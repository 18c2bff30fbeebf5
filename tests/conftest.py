"""
Pytest configuration for the transformer tests.

Puts the project root on the Python path so test files can import
transformer, utils and models directly.
"""

import sys
from pathlib import Path

# Add the parent directory to the Python path
parent_dir = Path(__file__).parent.parent
if str(parent_dir) not in sys.path:
    sys.path.insert(0, str(parent_dir))

import pytest

from utils import CallCounter, FUNCTION_REGISTRY, clear_performance_metrics


@pytest.fixture
def tracked():
    """Factory wrapping a callable in a CallCounter."""
    def _track(func, label=None):
        return CallCounter(func, label)
    return _track


@pytest.fixture
def isolated_registry():
    """Snapshot the function registry and restore it after the test."""
    snapshot = dict(FUNCTION_REGISTRY)
    yield FUNCTION_REGISTRY
    FUNCTION_REGISTRY.clear()
    FUNCTION_REGISTRY.update(snapshot)


@pytest.fixture(autouse=True)
def reset_performance_metrics():
    clear_performance_metrics()
    yield
    clear_performance_metrics()
