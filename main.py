"""CLI entrypoint for the accessibility backfill and its maintenance commands."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import signal
import sys
from typing import List, Optional

from config import Settings
from generation import OPENAI_VOICES, get_caption_generator, get_speech_synthesizer
from orchestrator import BackfillOrchestrator, CancellationToken, RetryPolicy, SAMPLE_PHRASE, generate_voice_samples
from storage import S3ObjectStore
from utils import setup_logger
from utils.exceptions import ConfigurationError, EnumerationError, GenerationError


EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2
EXIT_CANCELLED = 130

logger = logging.getLogger("backfill.cli")

_LOGGED_PACKAGES = ("backfill", "core", "generation", "orchestrator", "storage")


def _print(payload) -> None:
    print(json.dumps(payload, ensure_ascii=False, default=str))


def _load_settings(args: argparse.Namespace) -> Settings:
    env_path = Path(args.env_file) if getattr(args, "env_file", None) else None
    settings = Settings.load_from_env_file(env_path)
    if getattr(args, "explorer_id", None):
        settings.explorer.id = args.explorer_id
    if getattr(args, "bucket", None):
        settings.storage.bucket = args.bucket
    return settings


def _install_cancel_handlers(token: CancellationToken) -> None:
    def _handler(signum, frame):
        _ = frame
        logger.warning("cancel_requested signal=%s", signum)
        token.cancel()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


def _build_store(settings: Settings) -> S3ObjectStore:
    return S3ObjectStore(
        settings.storage.bucket,
        region=settings.storage.region,
        page_size=settings.storage.page_size,
    )


def cmd_backfill(args: argparse.Namespace, settings: Settings) -> int:
    settings.validate_required()
    config = settings.to_backfill_config()

    token = CancellationToken()
    _install_cancel_handlers(token)

    orchestrator = BackfillOrchestrator(
        config=config,
        store=_build_store(settings),
        caption_generator=get_caption_generator(settings),
        speech_synthesizer=get_speech_synthesizer(settings),
        retry_policy=RetryPolicy.from_settings(settings.gemini, sleep=token.sleep),
        cancel_token=token,
    )

    try:
        summary = orchestrator.run()
    except EnumerationError as exc:
        partial = exc.summary.headline() if exc.summary is not None else None
        _print({"error": str(exc), "summary": partial})
        return EXIT_FAILED

    _print(summary.headline())
    if summary.cancelled:
        return EXIT_CANCELLED
    return EXIT_FAILED if summary.errors else EXIT_OK


def cmd_quota_check(args: argparse.Namespace, settings: Settings) -> int:
    settings.validate_required(["GEMINI_API_KEY"])
    generator = get_caption_generator(settings)
    try:
        text = generator.check_quota()
    except GenerationError as exc:
        logger.error("quota_check_failed model=%s error=%s", generator.model, exc)
        _print({"ok": False, "model": generator.model, "error": str(exc)})
        return EXIT_FAILED
    _print({"ok": True, "model": generator.model, "response": text.strip()})
    return EXIT_OK


def cmd_voice_samples(args: argparse.Namespace, settings: Settings) -> int:
    settings.validate_required(["STORAGE_BUCKET", "OPENAI_API_KEY"])
    voices = [item.strip() for item in str(args.voices or "").split(",") if item.strip()]
    if not voices:
        voices = list(OPENAI_VOICES)

    token = CancellationToken()
    _install_cancel_handlers(token)

    results = generate_voice_samples(
        _build_store(settings),
        get_speech_synthesizer(settings),
        voices,
        phrase=args.phrase,
        cancel_token=token,
    )
    succeeded = sum(1 for item in results if item.ok)
    _print(
        {
            "succeeded": succeeded,
            "requested": len(voices),
            "failed": [item.voice for item in results if not item.ok],
        }
    )
    return EXIT_OK if succeeded == len(voices) else EXIT_FAILED


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Reflections accessibility backfill")
    parser.add_argument("--env-file", default="", help="Path to a .env file (default config/.env)")
    parser.add_argument("--log-level", default="", help="Overrides LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    backfill = sub.add_parser("backfill", help="Fill missing captions, deep dives and narration audio")
    backfill.add_argument("--explorer-id", default="")
    backfill.add_argument("--bucket", default="")

    sub.add_parser("quota-check", help="Send one probe request to the caption model")

    samples = sub.add_parser("voice-samples", help="Upload a preview clip for each voice")
    samples.add_argument("--bucket", default="")
    samples.add_argument("--phrase", default=SAMPLE_PHRASE)
    samples.add_argument("--voices", default=",".join(OPENAI_VOICES))

    return parser


_COMMANDS = {
    "backfill": cmd_backfill,
    "quota-check": cmd_quota_check,
    "voice-samples": cmd_voice_samples,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = _load_settings(args)
    for name in _LOGGED_PACKAGES:
        setup_logger(name, level=args.log_level or settings.log.level, log_file=settings.log.file)

    try:
        return _COMMANDS[args.command](args, settings)
    except ConfigurationError as exc:
        logger.error("configuration_error missing=%s", ",".join(exc.missing))
        _print({"error": str(exc)})
        return EXIT_CONFIG


if __name__ == "__main__":
    sys.exit(main())
