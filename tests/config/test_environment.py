"""Tests for environment variable overrides of pipeline options."""

import pytest

from spanrax.config.environment import (
    apply_environment_overrides,
    convert_env_value,
    get_env_value,
)


class TestGetEnvValue:
    """Test suite for get_env_value function."""

    def test_get_env_value_with_set_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SPANRAX_TEMP_LOCATION", "/scratch")
        assert get_env_value("TEMP_LOCATION") == "/scratch"

    def test_get_env_value_with_custom_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CUSTOM_TEST_VAR", "custom_value")
        assert get_env_value("TEST_VAR", prefix="CUSTOM_") == "custom_value"

    def test_get_env_value_with_unset_variable_returns_default(self) -> None:
        assert get_env_value("NONEXISTENT_VAR", default="fallback") == "fallback"
        assert get_env_value("NONEXISTENT_VAR") is None


class TestConvertEnvValue:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("true", True),
            ("Yes", True),
            ("ON", True),
            ("false", False),
            ("off", False),
            ("42", 42),
            ("-3", -3),
            ("2.5", 2.5),
            ("/mnt/scratch", "/mnt/scratch"),
        ],
    )
    def test_conversion(self, raw, expected) -> None:
        result = convert_env_value(raw)
        assert result == expected
        assert type(result) is type(expected)

    def test_one_and_zero_are_booleans(self) -> None:
        assert convert_env_value("1") is True
        assert convert_env_value("0") is False


class TestApplyEnvironmentOverrides:
    def test_top_level_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SPANRAX_APP_NAME", "nightly")
        result = apply_environment_overrides({"app_name": "daily", "test_mode": False})
        assert result == {"app_name": "nightly", "test_mode": False}

    def test_nested_override_creates_sections(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SPANRAX_SPANNER__EMULATOR_HOST", "localhost:9010")
        result = apply_environment_overrides({})
        assert result == {"spanner": {"emulator_host": "localhost:9010"}}

    def test_scalar_replaced_by_section(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SPANRAX_SPANNER__PROJECT", "p")
        result = apply_environment_overrides({"spanner": "disabled"})
        assert result == {"spanner": {"project": "p"}}

    def test_input_not_mutated(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SPANRAX_SECTION__KEY", "new")
        options = {"section": {"key": "old"}}
        apply_environment_overrides(options)
        assert options == {"section": {"key": "old"}}

    def test_unprefixed_variables_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OTHER_APP_NAME", "x")
        assert apply_environment_overrides({"app_name": "a"}) == {"app_name": "a"}
