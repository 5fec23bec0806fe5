# src/main.py — v2
"""CLI entry point: inspect the registries and dry-run requests.

Usage:
    genrouter capabilities [capability [use_case]]
    genrouter models <capability> <use_case>
    genrouter validate <request.json>
    genrouter select <request.json>
    genrouter health

All commands print JSON on stdout; logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from genrouter.version import __version__

logger = logging.getLogger(__name__)

EXIT_INVALID = 2


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="genrouter",
        description=f"genrouter v{__version__} - generation request router",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    p_caps = subparsers.add_parser(
        "capabilities", help="List capabilities, or describe one",
    )
    p_caps.add_argument("capability", nargs="?", default=None)
    p_caps.add_argument("use_case", nargs="?", default=None)
    p_caps.set_defaults(func=_cmd_capabilities)

    p_models = subparsers.add_parser(
        "models", help="List registry models for a capability/use case",
    )
    p_models.add_argument("capability")
    p_models.add_argument("use_case")
    p_models.set_defaults(func=_cmd_models)

    p_validate = subparsers.add_parser(
        "validate", help="Validate a request JSON file (exit 2 when invalid)",
    )
    p_validate.add_argument("file", type=Path, help="Path to request JSON")
    p_validate.set_defaults(func=_cmd_validate)

    p_select = subparsers.add_parser(
        "select", help="Show the model selection and fallback chain for a request",
    )
    p_select.add_argument("file", type=Path, help="Path to request JSON")
    p_select.set_defaults(func=_cmd_select)

    p_health = subparsers.add_parser("health", help="Show component health")
    p_health.set_defaults(func=_cmd_health)

    return parser


async def _cmd_capabilities(args: argparse.Namespace) -> int:
    service = _service()
    if args.capability is None:
        reply = service.capabilities()
    else:
        reply = service.capability(args.capability, args.use_case)
    _print_json(reply.body)
    return 0 if reply.ok else 1


async def _cmd_models(args: argparse.Namespace) -> int:
    from genrouter.registry.capability_registry import RegistryLookupError
    from genrouter.registry.model_registry import ModelRegistry

    try:
        models = ModelRegistry.default().models_for(args.capability, args.use_case)
    except RegistryLookupError as exc:
        logger.error("%s", exc)
        return 1
    _print_json([m.model_dump(mode="json") for m in models])
    return 0


async def _cmd_validate(args: argparse.Namespace) -> int:
    request = _load_request(args.file)
    if request is None:
        return 1
    reply = _service().validate(request)
    _print_json(reply.body["validation"])
    return 0 if reply.body["validation"]["valid"] else EXIT_INVALID


async def _cmd_select(args: argparse.Namespace) -> int:
    from genrouter.core.errors import SelectionError

    request = _load_request(args.file)
    if request is None:
        return 1

    router = _service().router
    parsed, report = router.validator.check(request, check_preferences=False)
    if parsed is None or not report.valid:
        _print_json(report.model_dump())
        return EXIT_INVALID

    try:
        selection = router.selector.select(parsed)
    except SelectionError as exc:
        _print_json({"error": exc.message, "code": exc.code})
        return EXIT_INVALID

    explanation = router.selector.explain_selection(selection, parsed)
    fallbacks = router.selector.fallback_models(parsed, selection.model_id)
    _print_json({
        "selection": selection.as_dict(),
        "explanation": explanation.model_dump(mode="json"),
        "fallbacks": [m.id for m in fallbacks],
    })
    return 0


async def _cmd_health(args: argparse.Namespace) -> int:
    reply = _service().health()
    _print_json(reply.body)
    return 0 if reply.ok else 1


def _service() -> Any:
    from genrouter.api.facade import build_service

    return build_service()


def _load_request(path: Path) -> dict[str, Any] | None:
    if not path.exists():
        logger.error("File not found: %s", path)
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        logger.error("Invalid JSON in %s: %s", path, exc)
        return None
    if not isinstance(data, dict):
        logger.error("Request file must contain a JSON object: %s", path)
        return None
    return data


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def _setup_logging(verbose: bool) -> None:
    """Logs go to stderr (and the optional log file) so stdout stays machine-readable."""
    from genrouter.config.settings import load_settings
    from genrouter.logging.logger import setup_logging

    settings = load_settings()
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
