"""Test configuration for Spanrax."""

import os
import sys
from typing import Any

import jax.numpy as jnp
import pytest

# Add the tests directory to the Python path for easy importing of test_common
tests_dir = os.path.dirname(os.path.abspath(__file__))
if tests_dir not in sys.path:
    sys.path.insert(0, tests_dir)

# Add the src directory to the Python path so tests can import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from test_common.fake_spanner import FakeSpannerDatabase  # noqa: E402

from spanrax.config.environment import ENV_PREFIX  # noqa: E402
from spanrax.config.options import PipelineOptions  # noqa: E402
from spanrax.core.context import PipelineContext  # noqa: E402
from spanrax.spanner.config import SpannerConfig  # noqa: E402


# Register custom markers
def pytest_configure(config):
    """Register custom markers for pytest."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (Spanner emulator)"
    )


# Add command-line options for different test types
def pytest_addoption(parser):
    """Add command-line options to pytest."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests against SPANNER_EMULATOR_HOST",
    )


# Skip tests based on command-line options
def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless requested and an emulator is configured."""
    if config.getoption("--integration") and os.environ.get("SPANNER_EMULATOR_HOST"):
        return

    skip_int = pytest.mark.skip(reason="integration test not selected")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_int)


@pytest.fixture(autouse=True)
def clean_spanrax_env(monkeypatch):
    """Remove SPANRAX_* variables of the calling shell from every test."""
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name)


# Define fixtures that can be reused across tests
@pytest.fixture
def spanner_config() -> SpannerConfig:
    """Return a fully identified SpannerConfig."""
    return (
        SpannerConfig.create()
        .with_project_id("test-project")
        .with_instance_id("test-instance")
        .with_database_id("test-db")
    )


@pytest.fixture
def singer_rows() -> list[list[Any]]:
    """Rows of the Singers table: SingerId, FirstName, Rating."""
    return [
        [1, "Marc", 4.5],
        [2, "Catalina", 3.0],
        [3, "Alice", 5.0],
        [4, "Lea", 2.5],
    ]


@pytest.fixture
def fake_database(singer_rows) -> FakeSpannerDatabase:
    """Return an in-process database holding the Singers table."""
    return FakeSpannerDatabase(
        tables={"Singers": (["SingerId", "FirstName", "Rating"], singer_rows)},
    )


@pytest.fixture
def sample_elements() -> list[dict[str, Any]]:
    """Generate sample elements for testing."""
    return [{"id": jnp.array(i), "name": f"row-{i}"} for i in range(10)]


@pytest.fixture
def live_context(tmp_path) -> PipelineContext:
    """Return a non-test context with a temp location under tmp_path."""
    ctx = PipelineContext(PipelineOptions(app_name="tests", temp_location=str(tmp_path)))
    yield ctx
    ctx.close()


@pytest.fixture
def testing_context(tmp_path) -> PipelineContext:
    """Return a test-mode context with a temp location under tmp_path."""
    ctx = PipelineContext.for_testing(
        options=PipelineOptions(app_name="tests", temp_location=str(tmp_path))
    )
    yield ctx
    ctx.close()
