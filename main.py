#!/usr/bin/env python3
"""
Bucket backup agent — command-line entry point.

Usage:
    python main.py -c backup.json -p photos/cat.jpg    # enqueue a key
    python main.py -c backup.json -b                   # run a backup now
    python main.py -c backup.json -s 8080              # serve /addkey and /backup
    python main.py -c backup.json -b -v                # verbose (DEBUG) logging

Config file format::

    {
        "ips": [],
        "bucket": "",
        "domain": "",
        "baseDir": "",
        "accessKey": "",
        "secretKey": ""
    }

Exit codes:
    0 — action succeeded
    1 — usage error, bad config, or the action failed
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from editlog import EditLog, configure_logging
from utils.config import AppConfig, ConfigError

logger = logging.getLogger("editlog")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Back up the objects of one bucket, resuming partial downloads.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python main.py -c backup.json -p some/key\n"
            "  python main.py -c backup.json -b\n"
            "  python main.py -c backup.json -s 8080\n"
            "    then: curl 'http://localhost:8080/addkey?key=some/key'\n"
        ),
    )
    parser.add_argument("-c", "--conf", type=Path, default=None,
                        help="Path to the JSON config file (required)")
    action = parser.add_mutually_exclusive_group()
    action.add_argument("-s", "--serve", type=int, default=None, metavar="PORT",
                        help="Start a server for /addkey and /backup on PORT")
    action.add_argument("-p", "--put", default=None, metavar="KEY",
                        help="Add a key to the keys log")
    action.add_argument("-b", "--backup", action="store_true",
                        help="Run a backup now and wait for it to finish")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Verbose (DEBUG) logging")
    return parser


def run(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    app_cfg = AppConfig.from_env()
    configure_logging(verbose=args.verbose, log_format=app_cfg.log_format)

    if args.conf is None:
        parser.print_help()
        return 1

    try:
        el = EditLog.from_file(args.conf)
    except (ConfigError, OSError) as exc:
        logger.critical("Error initializing editLog: %s", exc)
        return 1

    if args.serve is not None:
        import uvicorn
        from api.app import create_app

        logger.info("Start a put server for bucket: %s", el.bucket)
        uvicorn.run(create_app(el, app_cfg), host="0.0.0.0", port=args.serve,
                    log_level="debug" if args.verbose else "info")
        return 0

    if args.backup:
        try:
            worker = el.start_backup()
        except OSError as exc:
            logger.error("Backup task failed: %s", exc)
            return 1
        worker.join()
        return 0

    if args.put is not None:
        if not args.put:
            logger.error("No key to put")
            return 1
        try:
            el.put_key(args.put)
        except (OSError, ValueError) as exc:
            logger.error("Error put key : %s (%s)", args.put, exc)
            return 1
        logger.info("Success put key : %s", args.put)
        return 0

    parser.print_help()
    return 1


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
