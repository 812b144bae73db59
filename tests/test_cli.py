"""Tests for the command line front end."""
import pytest

from snb_loader import __version__
from snb_loader.cli import EXIT_CONFIG, EXIT_FAILED, EXIT_OK, build_parser, config_from_args, main
from snb_loader.config import LoadMode
from snb_loader.errors import ConfigurationError


def run(*argv):
    return main(list(argv))


# ========== Argument Parsing Tests ==========

class TestArguments:
    def test_camel_case_option_names(self):
        args = build_parser().parse_args([
            "--mode", "edges", "--outputDir", "/out", "--graphName", "snb",
            "--numLoaders", "4", "--loaderIdx", "3", "--numThreads", "8",
            "--reportInt", "5", "--reportFmt", "lfT", "a", "b",
        ])
        config = config_from_args(args)
        assert config.base_dir == "a"
        assert config.supp_dir == "b"
        assert config.mode == LoadMode.EDGES
        assert config.output_dir == "/out"
        assert config.graph_name == "snb"
        assert (config.num_loaders, config.loader_idx, config.num_threads) == (4, 3, 8)
        assert config.report_interval == 5.0
        assert config.report_format == "lfT"

    def test_sources_required(self):
        args = build_parser().parse_args(["only_one"])
        with pytest.raises(ConfigurationError):
            config_from_args(args)

    def test_flags_override_yaml(self, tmp_path):
        path = tmp_path / "run.yaml"
        path.write_text("base_dir: /yaml/base\nsupp_dir: /yaml/supp\nnum_threads: 4\ngraph_name: fromyaml\n")
        args = build_parser().parse_args(["--config", str(path), "--numThreads", "2"])
        config = config_from_args(args)
        assert config.base_dir == "/yaml/base"
        assert config.num_threads == 2
        assert config.graph_name == "fromyaml"

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            run("--version")
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out


# ========== Exit Status Tests ==========

class TestMain:
    def test_success(self, dataset, capsys):
        base, supp = dataset
        code = run("--sink", "memory", "--reportInt", "0.01", "--numThreads", "2", str(base), str(supp))
        assert code == EXIT_OK
        out = capsys.readouterr().out
        assert out.splitlines()[0].split() == ["L", "F", "D", "T"]
        assert "(6/6)" in out

    def test_parquet_image(self, dataset, tmp_path):
        base, supp = dataset
        image = tmp_path / "image"
        code = run("--outputDir", str(image), "--graphName", "snb", "--reportInt", "0.01", str(base), str(supp))
        assert code == EXIT_OK
        assert (image / "part1.snb" / "vertices_000001.parquet").exists()
        assert (image / "part1.snb" / "edges_000001.parquet").exists()

    def test_invalid_layout(self, dataset):
        base, supp = dataset
        assert run("--numLoaders", "2", "--loaderIdx", "2", str(base), str(supp)) == EXIT_CONFIG

    def test_bad_report_format(self, dataset):
        base, supp = dataset
        assert run("--reportFmt", "LQ", str(base), str(supp)) == EXIT_CONFIG

    def test_missing_directory(self, tmp_path):
        assert run("--sink", "memory", str(tmp_path / "a"), str(tmp_path / "b")) == EXIT_CONFIG

    def test_worker_failure(self, dataset):
        base, supp = dataset
        (base / "tag_0_0.csv").write_text("id|name|url\nnot-a-number|x|y\n")
        code = run("--sink", "memory", "--reportInt", "0.01", "--mode", "nodes", str(base), str(supp))
        assert code == EXIT_FAILED

    def test_unwritable_output_dir(self, dataset, tmp_path):
        base, supp = dataset
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("")
        code = run("--outputDir", str(blocker / "image"), "--reportInt", "0.01", str(base), str(supp))
        assert code == EXIT_FAILED

    def test_quoted_number_in_yaml(self, dataset, tmp_path):
        base, supp = dataset
        path = tmp_path / "run.yaml"
        path.write_text("num_threads: '4'\nsink: memory\n")
        assert run("--config", str(path), str(base), str(supp)) == EXIT_CONFIG
