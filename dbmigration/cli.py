#!/usr/bin/env python3
"""
CLI for planning the database migration stack.

Runs the construction pass and prints either the full handoff document
(`plan`) or only the output records (`outputs`) as JSON to stdout.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import uuid
from typing import Optional

from .builder import build_stack
from .config import _get_env, load_config
from .errors import ConfigurationError, MigrationStackError

LOGGER_NAME = "dbmigration"


class _RunIdFilter(logging.Filter):
    """
    Ensure every log record has a run_id attribute for formatting.
    """

    def __init__(self, run_id: str) -> None:
        super().__init__()
        self._run_id = run_id

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003 - logging uses `filter` name
        if not hasattr(record, "run_id"):
            record.run_id = self._run_id
        return True


def _coerce_log_level(level: str) -> int:
    level_upper = (level or "").strip().upper()
    if not level_upper:
        return logging.INFO
    return logging._nameToLevel.get(level_upper, logging.INFO)


def configure_logging(*, run_id: str, level: str) -> logging.LoggerAdapter:
    """
    Configure logging for CLI runs.

    - Uses root logger configuration only if nothing is configured yet.
    - Tags all records with a run_id so one pass can be followed in the logs.
    """
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=_coerce_log_level(level),
            format="%(asctime)s %(levelname)s [%(name)s] [run=%(run_id)s] %(message)s",
            stream=sys.stderr,
        )
    else:
        root.setLevel(_coerce_log_level(level))

    for h in root.handlers:
        existing = [f for f in h.filters if isinstance(f, _RunIdFilter)]
        if existing:
            existing[0]._run_id = run_id
        else:
            h.addFilter(_RunIdFilter(run_id))

    return logging.LoggerAdapter(logging.getLogger(LOGGER_NAME), {"run_id": run_id})


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="dbmigration",
        description="Build the database migration stack descriptor graph and print it as JSON.",
    )
    p.add_argument(
        "command",
        nargs="?",
        default="plan",
        choices=["plan", "outputs"],
        help='"plan" prints descriptors, edges and outputs; "outputs" prints only the outputs (default: plan).',
    )
    p.add_argument(
        "--config",
        default=None,
        help="JSON file with snake_case configuration fields (overrides the defaults).",
    )
    p.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help='Logging verbosity (default: MIGRATION_LOG_LEVEL or "WARNING").',
    )
    p.add_argument(
        "--pretty",
        action="store_true",
        help="Pretty-print JSON output.",
    )
    return p.parse_args(sys.argv[1:] if argv is None else argv)


def main(argv: Optional[list[str]] = None) -> int:
    """
    CLI entrypoint.

    Returns 0 on success, 2 on configuration errors, 3 on other construction errors.
    """
    args = _parse_args(argv)
    run_id = uuid.uuid4().hex[:12]

    log_level = args.log_level or _get_env(os.environ, "MIGRATION_LOG_LEVEL") or "WARNING"
    log = configure_logging(run_id=run_id, level=log_level)
    try:
        config = load_config(args.config, log=log)
        build = build_stack(config)
        document = build.to_dict()
        payload = document if args.command == "plan" else document["outputs"]
        if args.pretty:
            print(json.dumps(payload, indent=2, ensure_ascii=False))
        else:
            print(json.dumps(payload, ensure_ascii=False))
        log.info("completed successfully")
        return 0
    except ConfigurationError as e:
        log.error("configuration error: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except MigrationStackError as e:
        log.error("construction failed: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 3
    except KeyboardInterrupt:
        log.warning("interrupted by user")
        print("Interrupted.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
