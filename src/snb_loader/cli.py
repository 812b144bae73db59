"""
Command line entry point.

    snb-loader [options] SOURCE1 SOURCE2

SOURCE1 is the dataset directory written by the generator, SOURCE2 the
directory of supplementary files. Options use the camelCase names of the
LDBC SNB loaders; ``--config`` reads the same settings from a YAML file, and flags
given on the command line take precedence over it.

Exit status: 0 on success, 2 on a configuration error, 1 when a worker
failed or a sink could not be closed.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

from snb_loader import __version__
from snb_loader.config import SINK_KINDS, LoadMode, RunConfig, read_config_file
from snb_loader.errors import ConfigurationError, SnbLoaderError
from snb_loader.loader import LoadCoordinator

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2

# flag dest -> RunConfig field
_OVERRIDES = {
    "mode": "mode",
    "outputDir": "output_dir",
    "graphName": "graph_name",
    "numLoaders": "num_loaders",
    "loaderIdx": "loader_idx",
    "numThreads": "num_threads",
    "reportInt": "report_interval",
    "reportFmt": "report_format",
    "sink": "sink",
    "flushRows": "sink_flush_rows",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snb-loader",
        description="Partitioned parallel bulk loader for LDBC SNB datasets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Report format flags:\n"
            "  l  per worker lines/s        L  total lines/s\n"
            "  f  per worker files done     F  total files done\n"
            "  d  per worker KB/s           D  total MB/s\n"
            "                               T  elapsed minutes\n"
        ),
    )
    parser.add_argument("source1", nargs="?", help="Dataset directory (generator output)")
    parser.add_argument("source2", nargs="?", help="Supplementary files directory")
    parser.add_argument("--mode", choices=[m.value for m in LoadMode],
                        help="Load nodes, edges, or all (default: all)")
    parser.add_argument("--outputDir", help="Directory for the graph image (default: ./)")
    parser.add_argument("--graphName", help="Name of the graph image (default: graph)")
    parser.add_argument("--numLoaders", type=int, help="Total loader processes (default: 1)")
    parser.add_argument("--loaderIdx", type=int, help="This loader's index, 0-based (default: 0)")
    parser.add_argument("--numThreads", type=int, help="Threads in this loader (default: 1)")
    parser.add_argument("--reportInt", type=float, help="Seconds between progress rows (default: 10)")
    parser.add_argument("--reportFmt", help="Progress columns, see below (default: LFDT)")
    parser.add_argument("--sink", choices=SINK_KINDS, help="Record destination (default: parquet)")
    parser.add_argument("--flushRows", type=int, help="Rows per Parquet segment (default: 100000)")
    parser.add_argument("--config", help="YAML file with run settings")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging level (default: INFO)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def config_from_args(args: argparse.Namespace) -> RunConfig:
    """Merge the YAML file (if any) with command line flags."""
    data: Dict[str, Any] = read_config_file(args.config) if args.config else {}
    if args.source1 is not None:
        data["base_dir"] = args.source1
    if args.source2 is not None:
        data["supp_dir"] = args.source2
    for dest, name in _OVERRIDES.items():
        value = getattr(args, dest)
        if value is not None:
            data[name] = value
    if "base_dir" not in data or "supp_dir" not in data:
        raise ConfigurationError("Both SOURCE1 and SOURCE2 directories are required")
    config = RunConfig.from_dict(data)
    config.validate()
    return config


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = config_from_args(args)
        result = LoadCoordinator(config).run()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG
    except SnbLoaderError as e:
        logger.error(f"Load failed: {e}")
        return EXIT_FAILED

    if not result.succeeded:
        for rank, error in result.failures:
            logger.error(f"Worker {rank}: {error}")
        return EXIT_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
