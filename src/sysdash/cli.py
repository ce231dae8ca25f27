"""Command line entry point for sysdash."""

import argparse
from typing import Sequence

import uvicorn

from sysdash.config import Config
from sysdash.logger import get_logger, setup_logging
from sysdash.monitor import SystemMonitor
from sysdash.server import create_app

logger = get_logger(__name__)


def _common_options() -> argparse.ArgumentParser:
    # SUPPRESS keeps an unset flag on a subcommand from clobbering the same
    # flag given before it.
    common = argparse.ArgumentParser(add_help=False, argument_default=argparse.SUPPRESS)
    common.add_argument("--disk-path", dest="disk_path", help="filesystem path to report disk usage for")
    common.add_argument("--interval-ms", dest="update_interval_ms", type=int, help="sampling interval (min 100)")
    common.add_argument("--hostname", help="hostname to report instead of the system one")
    common.add_argument("--log-level", dest="log_level", help="DEBUG, INFO, WARNING or ERROR")
    common.add_argument("--log-file", dest="log_file", help="also write logs to this rotating file")
    return common


def build_parser() -> argparse.ArgumentParser:
    common = _common_options()
    parser = argparse.ArgumentParser(
        prog="sysdash", description="Live host resource dashboard.", parents=[common]
    )

    sub = parser.add_subparsers(dest="command")
    serve = sub.add_parser(
        "serve", parents=[common], help="run the collector and the HTTP/WebSocket server (default)"
    )
    serve.add_argument("--host", default=argparse.SUPPRESS, help="bind address")
    serve.add_argument("--port", type=int, default=argparse.SUPPRESS, help="listen port")
    sub.add_parser("top", parents=[common], help="run the terminal dashboard")
    return parser


def serve(config: Config) -> None:
    monitor = SystemMonitor.from_config(config)
    app = create_app(monitor.cache, config.update_interval, monitor=monitor)
    logger.info(f"Starting server on {config.host}:{config.port}")
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())


def top(config: Config) -> None:
    from sysdash.app import SysdashApp

    SysdashApp(config).run()


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    overrides = {k: v for k, v in vars(args).items() if k != "command"}
    config = Config.from_env().with_overrides(**overrides)

    setup_logging(config.log_level, config.log_file)
    logger.info(
        f"Config: port={config.port} disk={config.disk_path} "
        f"interval={config.update_interval_ms}ms hostname={config.hostname or '(system)'}"
    )

    if args.command == "top":
        top(config)
    else:
        serve(config)


if __name__ == "__main__":
    main()
