#!/usr/bin/env python3
"""Debug log command line — record, inspect, upload and serve."""

import argparse
import logging
import sys

from debuglog.collector import create_app
from debuglog.config import load_config, load_yaml_config
from debuglog.debug_log import DebugLog

logger = logging.getLogger(__name__)

# Flag -> Config field
_SETTING_FLAGS = {
    "log-dir": "log_dir",
    "server": "server",
    "threshold-kb": "size_threshold_kb",
    "overflow-cap": "overflow_cap",
    "truncate-policy": "truncate_policy",
}


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Debug log client")
    parser.add_argument("--config", default=None, help="Path to YAML config file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    for flag, field in _SETTING_FLAGS.items():
        parser.add_argument(f"--{flag}", dest=field, default=None, help=f"Override the {field} setting")
    sub = parser.add_subparsers(dest="command", required=True)

    rec = sub.add_parser("record", help="Append a tagged entry to the log")
    rec.add_argument("tag")
    rec.add_argument("message")
    rec.add_argument("--no-echo", action="store_true", help="Do not print the entry to the console")

    sub.add_parser("read", help="Print every entry in the log")
    sub.add_parser("clear", help="Delete the log file")

    up = sub.add_parser("upload", help="Upload the log and truncate it")
    up.add_argument("--sync", action="store_true", help="Truncate first and hand off without waiting")

    sub.add_parser("enable", help="Turn file logging on")
    sub.add_parser("disable", help="Turn file logging off")
    sub.add_parser("status", help="Show logging switch, file size and threshold")

    col = sub.add_parser("collector", help="Run the receiving endpoint")
    col.add_argument("--host", default="127.0.0.1")
    col.add_argument("--port", type=int, default=8000)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_cli_parser().parse_args(argv)
    overrides = {field: getattr(args, field) for field in _SETTING_FLAGS.values()}

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [debuglog] %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_config([], load_yaml_config(args.config), overrides)
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        return 2

    if args.command == "collector":
        logger.info("Collector listening on %s:%d", args.host, args.port)
        create_app().run(host=args.host, port=args.port)
        return 0

    debug = DebugLog(config)
    try:
        if args.command == "record":
            debug.record(args.tag, args.message, echo=not args.no_echo)
        elif args.command == "read":
            for entry in debug.read_all():
                print(entry)
        elif args.command == "clear":
            debug.clear()
        elif args.command == "upload":
            debug.upload_and_truncate(synchronous=args.sync)
        elif args.command == "enable":
            debug.enable_logging()
            logger.info("File logging enabled")
        elif args.command == "disable":
            debug.disable_logging()
            logger.info("File logging disabled")
        elif args.command == "status":
            print(f"logging_enabled={debug.is_logging_enabled()}")
            print(f"log_file={config.log_path}")
            print(f"size_kb={debug.store.size_kb():.1f}")
            print(f"threshold_kb={config.size_threshold_kb}")
            print(f"server={config.upload_url}")
    finally:
        debug.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
