"""
Command line entry point: geoip-web-api [--config PATH]
"""

import argparse
import sys
from typing import List, Optional

from .config import CONFIG_PATH, default_options, load_json_options
from .logging_config import setup_logging
from .schemas.options import AppOptions
from .server import GeoServer
from .utils import assert_path, expand_tilde_path

LOG_TAG = "GeoCli"


class CliError(Exception):
    """Startup failure reported to the user before exiting"""


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="geoip-web-api",
        description="AMP-GEO compatible location web API",
    )
    parser.add_argument("--config", default=None,
                        help="Path to a JSON configuration file (default: $GEOIP_API_CONFIG)")
    return parser.parse_args(argv)


def get_user_options(config: Optional[str]) -> AppOptions:
    """Load options from the --config argument, or defaults when none was given"""
    if config is None:
        return default_options()

    config = config.strip()
    if not config:
        raise CliError("Invalid custom config path")

    # Drop one pair of surrounding quotes
    config_path = config
    if len(config_path) >= 2 and config_path[0] == config_path[-1] and config_path[0] in "'\"":
        config_path = config_path[1:-1].strip()
    try:
        return load_json_options(expand_tilde_path(config_path))
    except (OSError, ValueError) as e:
        raise CliError(f"Failed to read custom config at {config_path}") from e


def get_active_db_path(options: AppOptions) -> str:
    return options.maxmind.db_path or options.ip2location.db_path


def build_server(argv: Optional[List[str]] = None) -> GeoServer:
    args = parse_args(argv)
    config = args.config if args.config is not None else (CONFIG_PATH or None)
    options = get_user_options(config)

    setup_logging(options.log_level)

    # Verify database available and exit early if not
    db_path = get_active_db_path(options)
    try:
        assert_path(db_path)
    except (OSError, ValueError) as e:
        raise CliError(f"Could not read database at {db_path}") from e

    return GeoServer(options)


def main(argv: Optional[List[str]] = None) -> int:
    try:
        server = build_server(argv)
        server.run()
    except KeyboardInterrupt:
        return 0
    except Exception as e:
        print(f"[{LOG_TAG}] {str(e) or 'Unknown server startup failure'}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
