"""Tests for plot-config loading and record type construction."""

import logging

import pytest

from logplot.config import ConfigError
from logplot.patterns import FieldSpec, build_pattern_set, load_pattern_set


class TestFieldSpec:
    def test_defaults(self):
        spec = FieldSpec(name="usage")
        assert spec.coef == 1.0
        assert spec.clamp is None
        assert spec.apply(42.0) == 42.0

    def test_coef_then_clamp(self):
        spec = FieldSpec(name="usage", coef=2.0, clamp=(0.0, 100.0))
        assert spec.apply(30.0) == 60.0
        assert spec.apply(80.0) == 100.0
        assert spec.apply(-5.0) == 0.0


class TestBuildPatternSet:
    def test_builds_record_types(self, cpu_config):
        ps = build_pattern_set(cpu_config)
        assert len(ps) == 1
        assert "cpu" in ps
        rt = ps["cpu"]
        assert rt.data_fields == ["usage"]
        assert rt.fields["usage"].axis == 0
        assert rt.fields["usage"].style == "-"
        assert rt.has_timestamp

    def test_binds_field_to_group_index(self, cpu_config):
        rt = build_pattern_set(cpu_config)["cpu"]
        spec, group = rt.bindings[0]
        assert spec.name == "usage"
        assert group == rt.pattern.groupindex["usage"]
        assert rt.ts_group == rt.pattern.groupindex["ts"]
        assert rt.time_ts_group is None

    def test_ylim_becomes_clamp(self, cpu_config):
        cpu_config["cpu"]["plots"] = {"usage": {"ylim": [0, 100], "coef": 0.5}}
        spec = build_pattern_set(cpu_config)["cpu"].fields["usage"]
        assert spec.clamp == (0.0, 100.0)
        assert spec.coef == 0.5

    def test_null_plot_settings_use_defaults(self):
        ps = build_pattern_set({"cpu": {"regex": r"(?P<ts>\d+) (?P<v>\d+)", "plots": {"v": None}}})
        assert ps["cpu"].fields["v"] == FieldSpec(name="v")

    def test_reserved_fields_are_not_data_fields(self):
        ps = build_pattern_set({
            "cpu": {"regex": r"(?P<ts>\d+) (?P<v>\d+)", "plots": {"ts": {}, "v": {}}},
        })
        assert ps["cpu"].data_fields == ["v"]

    def test_to_dict_hides_regex(self, cpu_config):
        data = build_pattern_set(cpu_config).to_dict()
        assert data == {
            "cpu": {"plots": {"usage": {"axis": 0, "style": "-", "coef": 1.0, "ylim": None}}},
        }
        assert "regex" not in data["cpu"]

    def test_field_without_group_rejected(self):
        with pytest.raises(ConfigError, match="missing"):
            build_pattern_set({"cpu": {"regex": r"(?P<ts>\d+)", "plots": {"missing": {}}}})

    def test_bad_regex_rejected(self):
        with pytest.raises(ConfigError, match="regex"):
            build_pattern_set({"cpu": {"regex": r"(?P<ts>\d+", "plots": {}}})

    def test_missing_regex_rejected(self):
        with pytest.raises(ConfigError):
            build_pattern_set({"cpu": {"plots": {}}})

    def test_bad_ylim_length_rejected(self):
        with pytest.raises(ConfigError):
            build_pattern_set({
                "cpu": {"regex": r"(?P<ts>\d+) (?P<v>\d+)", "plots": {"v": {"ylim": [1]}}},
            })

    def test_inverted_ylim_rejected(self):
        with pytest.raises(ConfigError, match="ylim"):
            build_pattern_set({
                "cpu": {"regex": r"(?P<ts>\d+) (?P<v>\d+)", "plots": {"v": {"ylim": [10, 0]}}},
            })

    def test_unknown_plot_key_rejected(self):
        with pytest.raises(ConfigError):
            build_pattern_set({
                "cpu": {"regex": r"(?P<ts>\d+) (?P<v>\d+)", "plots": {"v": {"color": "red"}}},
            })

    def test_empty_config_rejected(self):
        with pytest.raises(ConfigError):
            build_pattern_set(None)

    def test_warns_without_timestamp_group(self, caplog):
        with caplog.at_level(logging.WARNING):
            ps = build_pattern_set({"plain": {"regex": r"v=(?P<v>\d+)", "plots": {"v": {}}}})
        assert not ps["plain"].has_timestamp
        assert "plain" in caplog.text


class TestLoadPatternSet:
    def test_loads_yaml_file(self, config_file):
        ps = load_pattern_set(config_file)
        assert "cpu" in ps

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Cannot read"):
            load_pattern_set(str(tmp_path / "nope.yaml"))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("cpu: [unclosed\n")
        with pytest.raises(ConfigError, match="YAML"):
            load_pattern_set(str(path))
