"""
Pytest configuration and fixtures for search-do tests.

This module provides fixtures for:
- Loading document conformance cases
- Isolating the global compiler configuration
- Thread pools for ActionFuture tests
"""

import os
import pytest
import yaml
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Iterator


# ============================================================================
# Unit Test Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def isolated_config() -> Iterator[None]:
    """Restore the global compiler configuration after each test."""
    from search_do import config

    saved = dict(config._global_config)
    config._global_config.update({"default_encoding": "json", "pretty": False})
    yield
    config._global_config.clear()
    config._global_config.update(saved)


@pytest.fixture
def executor() -> Iterator[ThreadPoolExecutor]:
    """Thread pool standing in for the execution layer."""
    pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="search-do-test")
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture
def search_body():
    """Block body used across compiler tests."""
    def body(b):
        b.query(lambda q: q.term(test="value"))
        b.size = 10
        b.tags = ["a", "b"]

    return body


# ============================================================================
# Conformance Loading
# ============================================================================

def conformance_dir() -> Path:
    """Get the conformance case directory."""
    env_dir = os.environ.get("TEST_SPEC_DIR")
    if env_dir:
        return Path(env_dir)
    return Path(__file__).parent / "conformance"


def load_test_specs(spec_dir: Path) -> list[dict[str, Any]]:
    """Load all conformance test cases from YAML files."""
    specs = []
    if not spec_dir.exists():
        return specs

    for spec_file in sorted(spec_dir.glob("*.yaml")):
        with open(spec_file) as f:
            spec = yaml.safe_load(f)
            if spec and "tests" in spec:
                for test in spec["tests"]:
                    test["_file"] = spec_file.name
                    test["_category"] = spec.get("name", spec_file.stem)
                    specs.append(test)
    return specs


def pytest_generate_tests(metafunc):
    """Generate test cases from conformance files."""
    if "conformance_test" in metafunc.fixturenames:
        tests = load_test_specs(conformance_dir())
        if tests:
            metafunc.parametrize(
                "conformance_test",
                tests,
                ids=[f"{t.get('_category', 'test')}::{t['name']}" for t in tests]
            )
        else:
            # No tests found - skip
            metafunc.parametrize("conformance_test", [{}], ids=["no_specs_found"])
