"""Command line entry point for the Minty linter."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from types import UnionType
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, TextIO, Union, get_args, get_origin, get_type_hints

from .editor.code_actions import apply_code_actions, provide_code_actions
from .editor.document_model import TextDocument
from .services.linter import LintResult, LintService
from .services.settings import Settings, SettingsStore, redact_secret
from .utils import logging as logging_utils
from .utils.file_io import FileSignature, file_has_changed, snapshot_file, write_text

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_LINT_FAILURE = 1
EXIT_USAGE = 2


def configure_logging(debug: bool = False, *, force: bool = False) -> None:
    """Configure logging: everything to the rotating log file, warnings to stderr."""

    level = logging.DEBUG if debug else logging.INFO
    console_level = logging.DEBUG if debug else logging.WARNING
    logging_utils.setup_logging(level, console_level=console_level, force=force)
    _LOGGER.debug("Log level %s, log file %s", logging.getLevelName(level), logging_utils.get_log_path())


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Return the effective settings, or defaults when the file cannot be read."""

    store = store or SettingsStore(path)
    try:
        return store.load(overrides=overrides)
    except (OSError, ValueError) as exc:
        _LOGGER.warning("Using default settings; %s could not be loaded: %s", store.path, exc)
        return Settings()


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the `minty` console script."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    debug = args.debug or _env_flag("MINTY_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("MINTY_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return EXIT_USAGE

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return EXIT_OK

    if settings.debug_logging and not debug:
        configure_logging(True, force=True)

    command = getattr(args, "command", None)
    if command is None:
        parser.print_usage(sys.stderr)
        return EXIT_USAGE
    if command == "set-api-key":
        return _set_api_key(settings_store, args.key)
    if command == "clear-api-key":
        settings_store.clear_api_key()
        print("API key cleared.")
        return EXIT_OK

    paths = [Path(item).expanduser() for item in args.files]
    missing = [str(path) for path in paths if not path.is_file()]
    if missing:
        print(f"File not found: {', '.join(missing)}", file=sys.stderr)
        return EXIT_USAGE

    service = LintService(settings, notifier=_print_notice)
    try:
        if command == "watch":
            return asyncio.run(_watch_and_close(service, paths, interval=args.interval))
        return asyncio.run(_lint_and_close(service, paths, as_json=args.json, fix=args.fix))
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Interrupted")
        return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="minty",
        add_help=True,
        description="Lint source files with a language model and apply its quick fixes.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload (with secrets redacted) and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.minty/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    lint = commands.add_parser("lint", help="Lint files and print their diagnostics.")
    lint.add_argument("files", nargs="+", metavar="FILE")
    lint.add_argument("--json", action="store_true", help="Print diagnostics as JSON.")
    lint.add_argument("--fix", action="store_true", help="Apply every quick fix and save the file.")

    watch = commands.add_parser("watch", help="Re-lint files whenever they change on disk.")
    watch.add_argument("files", nargs="+", metavar="FILE")
    watch.add_argument(
        "--interval",
        type=float,
        default=1.0,
        help="Seconds between checks for changes (default: 1.0).",
    )

    set_key = commands.add_parser("set-api-key", help="Store the OpenAI API key (encrypted).")
    set_key.add_argument("key", nargs="?", help="The key; prompted for when omitted.")

    commands.add_parser("clear-api-key", help="Remove the stored OpenAI API key.")
    return parser


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _print_notice(message: str) -> None:
    print(message, file=sys.stderr)


def _set_api_key(store: SettingsStore, key: str | None) -> int:
    value = key if key is not None else getpass.getpass("Enter your OpenAI API key: ")
    if not value.strip():
        print("No API key given.", file=sys.stderr)
        return EXIT_USAGE
    store.set_api_key(value)
    print("API key saved successfully.")
    return EXIT_OK


async def _lint_and_close(
    service: LintService,
    paths: Sequence[Path],
    *,
    as_json: bool = False,
    fix: bool = False,
    stream: TextIO | None = None,
) -> int:
    try:
        return await lint_paths(service, paths, as_json=as_json, fix=fix, stream=stream)
    finally:
        await service.aclose()


async def _watch_and_close(service: LintService, paths: Sequence[Path], *, interval: float) -> int:
    try:
        return await watch_paths(service, paths, interval=interval)
    finally:
        await service.aclose()


async def lint_paths(
    service: LintService,
    paths: Sequence[Path],
    *,
    as_json: bool = False,
    fix: bool = False,
    stream: TextIO | None = None,
) -> int:
    """Lint every path, print the diagnostics, and optionally apply quick fixes."""

    destination = stream or sys.stdout
    exit_code = EXIT_OK
    report: list[dict[str, Any]] = []
    for path in paths:
        document = TextDocument.from_path(path)
        result = await service.lint_document(document)
        if not result.ok:
            exit_code = EXIT_LINT_FAILURE
        fixed = 0
        if fix and result.applied and result.diagnostics:
            fixed = _apply_fixes(document, result, path)
        if as_json:
            report.append(_result_payload(result, fixed=fixed))
        else:
            _print_result(result, destination, fixed=fixed)
    if as_json:
        json.dump(report, destination, indent=2)
        destination.write("\n")
    return exit_code


async def watch_paths(
    service: LintService,
    paths: Sequence[Path],
    *,
    interval: float = 1.0,
    max_cycles: int | None = None,
    stream: TextIO | None = None,
    sleep: Callable[[float], Any] = asyncio.sleep,
) -> int:
    """Lint each path, then re-lint it whenever its contents change on disk."""

    destination = stream or sys.stdout
    signatures: Dict[Path, FileSignature | None] = {path: None for path in paths}
    cycles = 0
    while max_cycles is None or cycles < max_cycles:
        for path, signature in list(signatures.items()):
            if signature is not None and not file_has_changed(signature):
                continue
            try:
                signatures[path] = snapshot_file(path)
            except FileNotFoundError:
                if signature is not None:
                    _LOGGER.info("%s was removed; clearing its diagnostics", path)
                    service.forget(str(path))
                signatures[path] = None
                continue
            result = await service.lint_document(TextDocument.from_path(path))
            _print_result(result, destination)
        cycles += 1
        if max_cycles is None or cycles < max_cycles:
            await sleep(interval)
    return EXIT_OK


def _apply_fixes(document: TextDocument, result: LintResult, path: Path) -> int:
    actions = provide_code_actions(document, result.diagnostics)
    if not actions:
        return 0
    applied = apply_code_actions(document, actions)
    if applied:
        write_text(path, document.text, encoding=document.encoding, bom=document.bom)
        _LOGGER.info("Applied %d quick fix(es) to %s", applied, path)
    return applied


def _print_result(result: LintResult, stream: TextIO, *, fixed: int = 0) -> None:
    if not result.ok:
        print(f"{result.uri}: lint failed", file=stream)
        return
    if result.stale:
        return
    for diagnostic in result.diagnostics:
        print(
            f"{result.uri}:{diagnostic.line + 1}:{diagnostic.start_column + 1}: "
            f"{diagnostic.severity.value}: {diagnostic.message}",
            file=stream,
        )
    if fixed:
        print(f"{result.uri}: applied {fixed} fix(es)", file=stream)


def _result_payload(result: LintResult, *, fixed: int = 0) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "uri": result.uri,
        "ok": result.ok,
        "diagnostics": [diagnostic.to_dict() for diagnostic in result.diagnostics],
    }
    if result.error is not None:
        payload["error"] = result.error.to_dict()
    if fixed:
        payload["fixed"] = fixed
    return payload


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    """Turn ``--set KEY=VALUE`` entries into typed settings overrides.

    Raises:
        ValueError: For malformed entries, unknown keys or values that do not
            fit the field's type.
    """
    hints = get_type_hints(Settings)
    overrides: Dict[str, Any] = {}
    for entry in items:
        key, sep, raw = entry.partition("=")
        key = key.strip()
        if not sep:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in hints:
            raise ValueError(f"Unknown setting '{key}'.")
        overrides[key] = _coerce_value(hints[key], raw.strip())
    return overrides


def _coerce_value(annotation: Any, text: str) -> Any:
    members = get_args(annotation) if get_origin(annotation) in (Union, UnionType) else (annotation,)
    if type(None) in members and text.lower() in {"none", "null"}:
        return None
    target = next(member for member in members if member is not type(None))
    target = get_origin(target) or target
    if target is bool:
        return _parse_bool(text)
    if target in (int, float):
        return target(text)
    if target is dict:
        try:
            value = json.loads(text or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError("Dict overrides must be valid JSON objects") from exc
        if not isinstance(value, dict):
            raise ValueError("Dict overrides must be valid JSON objects")
        return value
    return text


def _parse_bool(value: str) -> bool:
    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    settings_payload = asdict(settings)
    settings_payload["api_key"] = redact_secret(settings.api_key)
    report = {
        "settings": settings_payload,
        "meta": {
            "path": str(store.path),
            "secret_backend": store.vault.strategy,
            "cli_overrides": sorted(overrides),
            "environment_variables": sorted(name for name in os.environ if name.startswith("MINTY_")),
        },
    }
    out = stream or sys.stdout
    json.dump(report, out, indent=2)
    out.write("\n")


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
