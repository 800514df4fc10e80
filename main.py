#!/usr/bin/env python3
"""Backdrop Station — Entry point.

Rotates backgrounds by time of day or on an interval, optionally pulling
fresh wallpapers from remote sources.

Usage:
    python3 main.py run                    # Rotate until Ctrl-C, printing each change
    python3 main.py check                  # Which time rule applies right now?
    python3 main.py check --at 23:30       # ...or at some other time
    python3 main.py next                   # Step to the next local background
    python3 main.py types                  # Provider types this build knows
    python3 main.py sources                # Configured sources
    python3 main.py fetch SOURCE_ID -n 3   # Enable a source and fetch a few images
    python3 main.py --config other.yaml --log-level DEBUG run
"""

__version__ = "1.0.0"

import argparse
import asyncio
import logging
import sys
from datetime import datetime

import config
from core.rotation import RotationMode
from core.runtime import BackdropRuntime
from core.schedule import parse_time
from core.settings_store import YamlSettingsStore
from sources import build_registry

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Backdrop Station — time-aware background rotation",
    )
    parser.add_argument(
        "--config", default=config.DEFAULT_SETTINGS_PATH,
        help=f"Path to settings YAML (default: {config.DEFAULT_SETTINGS_PATH})",
    )
    parser.add_argument(
        "--log-level", default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set the logging verbosity (default: INFO)",
    )
    parser.add_argument(
        "--version", action="version",
        version=f"Backdrop Station {__version__}",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Rotate backgrounds until interrupted")
    run.add_argument("--mode", choices=[m.value for m in RotationMode],
                     help="Override the saved rotation mode")

    check = sub.add_parser("check", help="Show the time rule and background for now")
    check.add_argument("--at", metavar="HH:MM", help="Check another time of day instead")

    sub.add_parser("next", help="Advance to the next local background")
    sub.add_parser("types", help="List available source types")
    sub.add_parser("sources", help="List configured sources")

    fetch = sub.add_parser("fetch", help="Fetch images from one source")
    fetch.add_argument("source_id")
    fetch.add_argument("-n", "--count", type=int, default=1)
    return parser.parse_args(argv)


def setup_logging(level_name: str) -> None:
    """Configure root logger with a consistent format."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-7s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )


def print_background(background, style):
    if background is None:
        print("background: none")
        return
    print(f"background: {background.name} [{background.type}] {background.value}")
    if style is not None:
        print(f"  blur={style.blur_depth} brightness={style.brightness} "
              f"saturate={style.saturate} mask={style.mask_color} size={style.bg_size}")


def make_runtime(args, **kwargs) -> BackdropRuntime:
    return BackdropRuntime(YamlSettingsStore(args.config), build_registry(),
                           render=print_background, **kwargs)


async def cmd_run(args) -> int:
    runtime = make_runtime(args)
    if args.mode:
        runtime.settings.mode = args.mode
    await runtime.start()
    try:
        await asyncio.Event().wait()
    finally:
        await runtime.stop()
    return 0


async def cmd_check(args) -> int:
    clock = datetime.now
    if args.at:
        minute = parse_time(args.at)
        fixed = datetime.now().replace(hour=minute // 60, minute=minute % 60)
        clock = lambda: fixed  # noqa: E731
    runtime = make_runtime(args, clock=clock)
    rule = runtime.rotator.current_rule()
    if rule is None:
        print("No time rule matches.")
        return 1
    background = runtime.settings.find_background(rule.background_id)
    print(f"rule: {rule.name} ({rule.start_time}-{rule.end_time})")
    print_background(background, None)
    return 0


async def cmd_next(args) -> int:
    runtime = make_runtime(args)
    background = await runtime.rotator.next_background()
    if background is None:
        print("No local backgrounds configured.")
        return 1
    return 0


async def cmd_types(args) -> int:
    registry = build_registry()
    for source_type in registry.types():
        info = registry.describe(source_type)
        required = [d["key"] for d in info["param_descriptors"] + info["custom_setting_descriptors"]
                    if d["required"]]
        print(f"{source_type:<10} {info['base_url'] or '(user supplied)'}")
        if required:
            print(f"           required: {', '.join(required)}")
        if info["doc_url"]:
            print(f"           docs: {info['doc_url']}")
    return 0


async def cmd_sources(args) -> int:
    runtime = make_runtime(args)
    if not runtime.settings.wallpaper_sources:
        print("No sources configured.")
        return 0
    for source_config in runtime.settings.wallpaper_sources:
        flag = "on " if source_config.enabled else "off"
        supported = "" if source_config.type in runtime.registry else "  (unsupported type)"
        print(f"[{flag}] {source_config.id:<30} {source_config.type:<10} {source_config.name}{supported}")
    return 0


async def cmd_fetch(args) -> int:
    runtime = make_runtime(args)
    await runtime.start(rotate=False)
    try:
        if runtime.manager.get_source(args.source_id) is None:
            print(f"Unknown or invalid source: {args.source_id}")
            return 1
        if not await runtime.enable_source(args.source_id):
            print(runtime.manager.state_of(args.source_id).error or "Could not enable source")
            return 1
        images = await runtime.manager.get_random_images(args.source_id, args.count)
        if not images:
            error = runtime.manager.last_error
            print(error.user_message() if error else "No images returned")
            return 1
        for image in images:
            size = f"{image.width}x{image.height}" if image.width and image.height else "?"
            print(f"{image.id:<24} {size:<11} {image.url}")
        return 0
    finally:
        await runtime.stop()


COMMANDS = {
    "run": cmd_run,
    "check": cmd_check,
    "next": cmd_next,
    "types": cmd_types,
    "sources": cmd_sources,
    "fetch": cmd_fetch,
}


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)
    logger.info("Backdrop Station v%s starting", __version__)
    try:
        return asyncio.run(COMMANDS[args.command](args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
