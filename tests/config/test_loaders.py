"""Tests for TOML loading and saving."""

import tomllib
from pathlib import Path

import pytest

from spanrax.config.loaders import deep_merge_dict, load_toml, save_toml


class TestLoadToml:
    """Tests for load_toml function."""

    def test_load_valid_toml(self, tmp_path: Path):
        config_file = tmp_path / "options.toml"
        config_file.write_text('[section]\nkey = "value"\nnumber = 42\n')
        assert load_toml(config_file) == {"section": {"key": "value", "number": 42}}

    def test_load_toml_with_str_path(self, tmp_path: Path):
        config_file = tmp_path / "options.toml"
        config_file.write_text('app_name = "job"\n')
        assert load_toml(str(config_file)) == {"app_name": "job"}

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError, match="Options file not found"):
            load_toml(tmp_path / "missing.toml")

    def test_invalid_toml(self, tmp_path: Path):
        config_file = tmp_path / "broken.toml"
        config_file.write_text("app_name = \n")
        with pytest.raises(tomllib.TOMLDecodeError):
            load_toml(config_file)


class TestSaveToml:
    def test_save_creates_parents_and_drops_none(self, tmp_path: Path):
        path = tmp_path / "nested" / "options.toml"
        save_toml({"app_name": "job", "temp_location": None, "section": {"a": 1, "b": None}}, path)

        with path.open("rb") as f:
            assert tomllib.load(f) == {"app_name": "job", "section": {"a": 1}}


class TestDeepMergeDict:
    def test_nested_merge(self):
        base = {"a": 1, "section": {"x": 1, "y": 2}}
        override = {"section": {"y": 3, "z": 4}, "b": 2}
        assert deep_merge_dict(base, override) == {
            "a": 1,
            "b": 2,
            "section": {"x": 1, "y": 3, "z": 4},
        }

    def test_base_not_mutated(self):
        base = {"section": {"x": 1}}
        deep_merge_dict(base, {"section": {"x": 2}})
        assert base == {"section": {"x": 1}}

    def test_scalar_overrides_section(self):
        assert deep_merge_dict({"a": {"x": 1}}, {"a": 5}) == {"a": 5}
