from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence

from colorama import just_fix_windows_console

from probmm.config import (
    BotConfig,
    ConfigError,
    apply_cli_overrides,
    apply_env,
    build_arg_parser,
    load_env,
)
from probmm.logger import setup_logging
from probmm.service import run_bot

DEFAULT_CONFIG_PATH = Path("config.yaml")

logger = logging.getLogger("probmm")


def build_config(args: argparse.Namespace) -> BotConfig:
    if args.config:
        config = BotConfig.load(Path(args.config))
    elif DEFAULT_CONFIG_PATH.exists():
        config = BotConfig.load(DEFAULT_CONFIG_PATH)
    else:
        config = BotConfig()
    apply_env(config)
    return apply_cli_overrides(config, args)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    load_env()
    try:
        config = build_config(args)
    except (FileNotFoundError, ValueError) as exc:
        setup_logging("INFO")
        logger.error("Invalid configuration: %s", exc)
        return 2

    setup_logging(config.log_level, config.log_file)
    try:
        config.validate()
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    just_fix_windows_console()
    try:
        asyncio.run(run_bot(config))
    except KeyboardInterrupt:
        logger.info("Bot interrupted, shutting down")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
