"""Pytest configuration and fixtures for test suite.

This is the root-level conftest.py that provides:
- Python path setup (so tests run without installing the package)
- Basic environment variable defaults
- Shared rule and attribute fixtures
"""
import os
import sys
from pathlib import Path

import pytest

# Project root holds the catalog_pipeline package
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from catalog_pipeline.models import CustomAttribute, Rule  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Set up basic test environment variables before any tests run."""
    os.environ.setdefault("LOG_LEVEL", "INFO")
    os.environ.setdefault("ENVIRONMENT", "test")
    
    yield


@pytest.fixture
def make_rule():
    """Factory for rules with sensible defaults."""
    def _make_rule(**overrides) -> Rule:
        data = {
            "name": "Rule",
            "match_type": "contains",
            "terms": [],
            "target_field": "categoria",
            "target_value": "Value",
            "base_points": 100,
            "order": 1,
        }
        data.update(overrides)
        return Rule(**data)
    return _make_rule


@pytest.fixture
def biquini_rule(make_rule) -> Rule:
    """Category rule matching swimwear names."""
    return make_rule(name="Biquini", terms=["BIQUINI"], target_value="Biquíni")


@pytest.fixture
def color_attribute() -> CustomAttribute:
    return CustomAttribute(name="Cores", kind="list", values=["Azul Marinho", "Azul", "Preto"])


@pytest.fixture
def size_attribute() -> CustomAttribute:
    return CustomAttribute(name="Tamanhos", kind="list", values=["PP", "P", "M", "G", "GG"])
