"""Test support: mocked connector inputs and outputs."""

from spanrax.testing.test_io import CustomIO, TestIORegistry

__all__ = ["CustomIO", "TestIORegistry"]
