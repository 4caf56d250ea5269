"""Application entry point for turnguard."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.openai_classifier import OpenAIClassifier
from adapters.openai_completion import OpenAICompletionInvoker
from adapters.sqlite_storage import SQLiteStorage
from client import build_openai_client
from core.audit import AuditEmitter
from core.config import CompletionConfig, PipelineConfig
from core.pipeline import TurnPipeline
from handler import handle_chat_request

NAME = "TURNGUARD"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = [os.getenv(name) for name in redact_cfg.get("patterns", [])]
    return sorted({value for value in values if value}, key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level = getattr(logging, str(config.get("level", "INFO")).upper(), logging.INFO)
    formatter = _RedactingFormatter(
        _collect_redaction_values(config),
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: list[logging.Handler] = []

    # Console logs go to stderr; stdout is reserved for the response body.
    if config.get("console", True):
        handlers.append(logging.StreamHandler(sys.stderr))

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/turnguard.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                path,
                maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
                backupCount=int(file_cfg.get("backup_count", 5)),
                encoding="utf-8",
            )
        )

    if not handlers:
        return

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=handlers)


def _build_pipeline(storage: SQLiteStorage) -> tuple[TurnPipeline, AuditEmitter]:
    client = build_openai_client(settings.COMPLETION_TIMEOUT_SECONDS)
    audit = AuditEmitter(storage)
    pipeline = TurnPipeline(
        store=storage,
        rule_source=storage,
        persona_source=storage,
        classifier=OpenAIClassifier(client, settings.CLASSIFIER_MODEL),
        completion=OpenAICompletionInvoker(
            client,
            CompletionConfig(
                model=settings.COMPLETION_MODEL,
                temperature=settings.COMPLETION_TEMPERATURE,
            ),
        ),
        audit=audit,
        config=PipelineConfig(
            rewrite_scope=settings.REWRITE_SCOPE,
            completion_timeout_seconds=settings.COMPLETION_TIMEOUT_SECONDS,
        ),
    )
    return pipeline, audit


def _init_db() -> None:
    _print_banner()
    _configure_logging()
    SQLiteStorage(settings.DB_PATH).init_db()
    logging.getLogger(__name__).info("Database ready at %s", settings.DB_PATH)


def _run_turn(request_path: Optional[str]) -> int:
    _configure_logging()
    logger = logging.getLogger(__name__)

    if request_path and request_path != "-":
        with open(request_path, "r", encoding="utf-8") as handle:
            payload = json.load(handle)
    else:
        payload = json.load(sys.stdin)

    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    pipeline, audit = _build_pipeline(storage)

    async def _process():
        response = await handle_chat_request(pipeline, payload)
        # Let pending audit writes land before the loop closes.
        await audit.drain()
        return response

    response = asyncio.run(_process())
    if response.body is None:
        logger.error("Turn failed with status %s: %s", response.status, response.error)
    else:
        print(json.dumps(response.body, ensure_ascii=False))
    return 0 if response.status == 200 else 1


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="turnguard")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("init-db", help="Create the SQLite tables")
    turn_parser = subparsers.add_parser("turn", help="Process one chat request")
    turn_parser.add_argument(
        "request",
        nargs="?",
        default="-",
        help="Path to a JSON chat request, or '-' for stdin",
    )

    args = parser.parse_args(argv)
    if args.command == "init-db":
        _init_db()
        return
    if args.command == "turn":
        sys.exit(_run_turn(args.request))
    parser.print_help()


if __name__ == "__main__":
    main()
