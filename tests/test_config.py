"""Tests for run configuration."""
import pytest

from snb_loader.config import LoadMode, RunConfig, read_config_file
from snb_loader.errors import ConfigurationError


def make_config(**overrides):
    values = {"base_dir": "/data/base", "supp_dir": "/data/supp"}
    values.update(overrides)
    return RunConfig(**values)


# ========== LoadMode Tests ==========

class TestLoadMode:
    def test_parse(self):
        assert LoadMode.parse("nodes") == LoadMode.NODES
        assert LoadMode.parse("EDGES") == LoadMode.EDGES
        assert LoadMode.parse(LoadMode.ALL) == LoadMode.ALL

    def test_unknown(self):
        with pytest.raises(ConfigurationError):
            LoadMode.parse("vertices")


# ========== RunConfig Tests ==========

class TestRunConfig:
    def test_defaults(self):
        config = make_config()
        assert config.mode == LoadMode.ALL
        assert config.output_dir == "./"
        assert config.graph_name == "graph"
        assert config.num_loaders == 1
        assert config.num_threads == 1
        assert config.report_interval == 10.0
        assert config.report_format == "LFDT"
        assert config.sink == "parquet"
        config.validate()

    def test_mode_string_converted(self):
        assert make_config(mode="edges").mode == LoadMode.EDGES

    def test_partition_labels(self):
        config = make_config(num_loaders=2, loader_idx=1, num_threads=3, graph_name="snb")
        assert [config.partition_label(t) for t in range(3)] == ["part4.snb", "part5.snb", "part6.snb"]
        assert config.total_workers == 6

    @pytest.mark.parametrize("overrides", [
        {"num_loaders": 0},
        {"num_threads": 0},
        {"loader_idx": 1},
        {"loader_idx": -1},
        {"report_interval": 0},
        {"report_format": "LFX"},
        {"sink": "neo4j"},
        {"sink_flush_rows": 0},
        {"graph_name": ""},
    ])
    def test_validate_rejects(self, overrides):
        with pytest.raises(ConfigurationError):
            make_config(**overrides).validate()

    def test_dict_round_trip(self):
        config = make_config(mode="nodes", num_threads=4)
        assert RunConfig.from_dict(config.to_dict()) == config

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError, match="threads"):
            RunConfig.from_dict({"base_dir": "a", "supp_dir": "b", "threads": 4})

    def test_missing_required_key(self):
        with pytest.raises(ConfigurationError):
            RunConfig.from_dict({"base_dir": "a"})

    @pytest.mark.parametrize("key, value", [
        ("num_threads", "4"),
        ("num_loaders", 2.0),
        ("loader_idx", True),
        ("sink_flush_rows", None),
        ("report_interval", "10"),
        ("report_interval", False),
        ("graph_name", 7),
        ("base_dir", ["a"]),
    ])
    def test_wrong_value_type(self, key, value):
        data = {"base_dir": "a", "supp_dir": "b"}
        data[key] = value
        with pytest.raises(ConfigurationError, match=key):
            RunConfig.from_dict(data)

    def test_integer_report_interval_accepted(self):
        config = RunConfig.from_dict({"base_dir": "a", "supp_dir": "b", "report_interval": 5})
        assert config.report_interval == 5
        config.validate()


# ========== YAML Tests ==========

class TestYaml:
    def test_yaml_round_trip(self, tmp_path):
        config = make_config(num_loaders=3, loader_idx=2, report_format="lT")
        path = tmp_path / "run.yaml"
        path.write_text(config.to_yaml())
        assert RunConfig.from_yaml(path) == config

    def test_partial_file(self, tmp_path):
        path = tmp_path / "run.yaml"
        path.write_text("num_threads: 8\nsink: memory\n")
        assert read_config_file(path) == {"num_threads": 8, "sink": "memory"}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "run.yaml"
        path.write_text("")
        assert read_config_file(path) == {}

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "run.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError):
            read_config_file(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "run.yaml"
        path.write_text("a: [unclosed\n")
        with pytest.raises(ConfigurationError):
            read_config_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            RunConfig.from_yaml(tmp_path / "absent.yaml")

    def test_quoted_number(self, tmp_path):
        path = tmp_path / "run.yaml"
        path.write_text("base_dir: a\nsupp_dir: b\nnum_threads: '4'\n")
        with pytest.raises(ConfigurationError, match="num_threads"):
            RunConfig.from_yaml(path)
