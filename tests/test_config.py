"""
Tests for importshake.config module.

This module tests the override configuration:
- Parsing and validating the JSON document
- Tolerant loading of missing or malformed files
- Deterministic, sorted serialization
- Recording new exceptions
- Resolving names to OverrideRules
"""
from __future__ import annotations

import json
import logging

import pytest

from importshake.bitset import Bitset
from importshake.config import OverrideRules, ShakeConfig


# =============================================================================
# Parsing Tests
# =============================================================================

class TestFromDict:
    """Tests for ShakeConfig.from_dict()."""

    def test_full_document(self):
        config = ShakeConfig.from_dict({
            "ignoreAll": ["pkg.legacy"],
            "ignoreImport": ["pkg"],
            "ignore": {"pkg.cli": ["pkg.plugins"]},
        })
        assert config.ignore_all == ["pkg.legacy"]
        assert config.ignore_import == ["pkg"]
        assert config.ignore == {"pkg.cli": ["pkg.plugins"]}

    def test_missing_fields(self):
        config = ShakeConfig.from_dict({})
        assert config.ignore_all == []
        assert config.ignore_import is None
        assert config.ignore == {}

    def test_empty_ignore_import_is_set(self):
        """An explicit empty list disables the default, unlike an absent field."""
        assert ShakeConfig.from_dict({"ignoreImport": []}).ignore_import == []

    @pytest.mark.parametrize(
        "data",
        [
            [],
            {"ignoreAll": "pkg"},
            {"ignoreImport": [1]},
            {"ignore": ["pkg"]},
            {"ignore": {"pkg.cli": "pkg.plugins"}},
        ],
    )
    def test_bad_shapes(self, data):
        with pytest.raises(ValueError):
            ShakeConfig.from_dict(data)


# =============================================================================
# Load / Save Tests
# =============================================================================

class TestLoadSave:
    """Tests for reading and writing the configuration file."""

    def test_missing_file(self, tmp_path):
        assert ShakeConfig.load(tmp_path / "absent.json") == ShakeConfig()

    def test_malformed_file(self, tmp_path, caplog):
        path = tmp_path / "config.json"
        path.write_text("{not json")

        with caplog.at_level(logging.WARNING, logger="importshake.config"):
            config = ShakeConfig.load(path)

        assert config == ShakeConfig()
        assert "Ignoring configuration" in caplog.text

    def test_wrong_shape_file(self, tmp_path, caplog):
        path = tmp_path / "config.json"
        path.write_text('{"ignoreAll": 3}')

        with caplog.at_level(logging.WARNING, logger="importshake.config"):
            assert ShakeConfig.load(path) == ShakeConfig()

    def test_save_is_sorted(self, tmp_path):
        path = tmp_path / "config.json"
        config = ShakeConfig(
            ignore_all=["pkg.z", "pkg.a", "pkg.z"],
            ignore_import=["pkg"],
            ignore={"pkg.z": ["pkg.b", "pkg.a"], "pkg.a": ["pkg.c"], "pkg.empty": []},
        )

        config.save(path)

        text = path.read_text()
        assert text.endswith("}\n")
        data = json.loads(text)
        assert data == {
            "ignore": {"pkg.a": ["pkg.c"], "pkg.z": ["pkg.a", "pkg.b"]},
            "ignoreAll": ["pkg.a", "pkg.z"],
            "ignoreImport": ["pkg"],
        }
        assert list(data) == ["ignore", "ignoreAll", "ignoreImport"]
        assert list(data["ignore"]) == ["pkg.a", "pkg.z"]

    def test_save_load_keeps_content(self, tmp_path):
        path = tmp_path / "config.json"
        config = ShakeConfig(ignore_all=["pkg.a"], ignore={"pkg.b": ["pkg.c"]})
        config.save(path)
        assert ShakeConfig.load(path) == config

    def test_unset_ignore_import_not_written(self):
        assert "ignoreImport" not in ShakeConfig().to_dict()
        assert ShakeConfig(ignore_import=[]).to_dict() == {"ignoreImport": []}


# =============================================================================
# Exception Recording Tests
# =============================================================================

class TestAddExceptions:
    """Tests for ShakeConfig.add_exceptions()."""

    def test_per_module(self):
        config = ShakeConfig(ignore={"pkg.c": ["pkg.b"]})
        config.add_exceptions("pkg.c", ["pkg.b", "pkg.z"])
        config.add_exceptions("pkg.d", ["pkg.a"])
        assert config.ignore == {"pkg.c": ["pkg.b", "pkg.z"], "pkg.d": ["pkg.a"]}

    def test_global_starts_from_default(self):
        config = ShakeConfig()
        config.add_exceptions("pkg.c", ["pkg.b"], global_=True, default_ignore_import=["pkg"])
        assert config.ignore_import == ["pkg", "pkg.b"]
        assert config.ignore == {}

    def test_global_keeps_explicit_list(self):
        config = ShakeConfig(ignore_import=["pkg.a"])
        config.add_exceptions("pkg.c", ["pkg.a", "pkg.b"], global_=True, default_ignore_import=["pkg"])
        assert config.ignore_import == ["pkg.a", "pkg.b"]


# =============================================================================
# OverrideRules Tests
# =============================================================================

class TestOverrideRulesFromConfig:
    """Tests for resolving names against a registry."""

    @pytest.fixture
    def registry(self, make_graph):
        return make_graph({"pkg": [], "pkg.a": ["pkg"], "pkg.b": ["pkg.a"]})

    def test_resolution(self, registry):
        config = ShakeConfig(
            ignore_all=["pkg.b"],
            ignore_import=["pkg.a"],
            ignore={"pkg.b": ["pkg"]},
        )

        rules = OverrideRules.from_config(config, registry)

        assert rules.ignore_all == Bitset.of(registry.id_of("pkg.b"))
        assert rules.ignore_import == Bitset.of(registry.id_of("pkg.a"))
        assert rules.ignore == {registry.id_of("pkg.b"): Bitset.of(registry.id_of("pkg"))}

    def test_default_ignore_import(self, registry):
        rules = OverrideRules.from_config(ShakeConfig(), registry, default_ignore_import=["pkg"])
        assert rules.ignore_import == Bitset.of(registry.id_of("pkg"))

    def test_explicit_list_replaces_default(self, registry):
        rules = OverrideRules.from_config(
            ShakeConfig(ignore_import=[]), registry, default_ignore_import=["pkg"]
        )
        assert rules.ignore_import == Bitset()

    def test_unknown_names_skipped(self, registry):
        config = ShakeConfig(
            ignore_all=["pkg.gone"],
            ignore={"pkg.gone": ["pkg"], "pkg.a": ["pkg.missing"]},
        )

        rules = OverrideRules.from_config(config, registry)

        assert rules.ignore_all == Bitset()
        assert rules.ignore == {registry.id_of("pkg.a"): Bitset()}
