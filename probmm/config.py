from __future__ import annotations

import argparse
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from dotenv import load_dotenv

from probmm.types import InstrumentConfig


class ConfigError(ValueError):
    pass


@dataclass
class VenueConfig:
    base_url: str = "https://api.probable.markets/public/api/v1"
    orderbook_path: str = "/book"
    order_path: str = "/order"
    order_status_path: str = "/order/{order_id}"
    cancel_path: str = "/order/{order_id}"
    request_timeout_seconds: float = 10.0
    api_key: str = ""
    api_secret: str = ""
    api_passphrase: str = ""


@dataclass
class QuotingConfig:
    instrument_ids: List[str] = field(default_factory=list)
    symbols: List[str] = field(default_factory=list)
    order_size: float = 0.0
    poll_interval_seconds: float = 1.0
    tick_delay_seconds: float = 0.1


@dataclass
class BotConfig:
    dry_run: bool = False
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    journal_dir: Optional[Path] = field(default_factory=lambda: Path("logs"))
    dashboard: bool = True
    venue: VenueConfig = field(default_factory=VenueConfig)
    quoting: QuotingConfig = field(default_factory=QuotingConfig)

    @classmethod
    def load(cls, path: Path) -> "BotConfig":
        if not path.exists():
            raise FileNotFoundError(f"Config not found: {path}")
        raw = _load_config_file(path)
        return _merge_config(cls(), raw)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BotConfig":
        return apply_env(cls(), environ)

    def instruments(self) -> List[InstrumentConfig]:
        symbols = self.quoting.symbols
        return [
            InstrumentConfig(
                instrument_id=instrument_id,
                order_size=self.quoting.order_size,
                symbol=symbols[index] if index < len(symbols) else None,
            )
            for index, instrument_id in enumerate(self.quoting.instrument_ids)
        ]

    def validate(self) -> None:
        if not self.quoting.instrument_ids:
            raise ConfigError("No instruments configured; set TOKEN_IDS or quoting.instrument_ids")
        if not self.quoting.order_size or self.quoting.order_size <= 0:
            raise ConfigError("Order size must be positive; set ORDER_SIZE or quoting.order_size")
        if len(set(self.quoting.instrument_ids)) != len(self.quoting.instrument_ids):
            raise ConfigError("Instrument ids must be unique")


def split_list(raw: Any) -> List[str]:
    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    return [str(item).strip() for item in items if str(item).strip()]


def _load_config_file(path: Path) -> Dict[str, Any]:
    if path.suffix.lower() in {".yaml", ".yml"}:
        return yaml.safe_load(path.read_text()) or {}
    if path.suffix.lower() == ".json":
        return json.loads(path.read_text())
    raise ValueError("Unsupported config format; use .yaml or .json")


def _merge_config(config: BotConfig, raw: Dict[str, Any]) -> BotConfig:
    venue = raw.get("venue", {}) or {}
    quoting = raw.get("quoting", {}) or {}

    for key, value in raw.items():
        if hasattr(config, key) and key not in {"venue", "quoting"}:
            setattr(config, key, value)
    if config.log_file is not None:
        config.log_file = Path(config.log_file)
    if config.journal_dir is not None:
        config.journal_dir = Path(config.journal_dir)

    for key, value in venue.items():
        if hasattr(config.venue, key):
            setattr(config.venue, key, value)

    for key, value in quoting.items():
        if hasattr(config.quoting, key):
            setattr(config.quoting, key, value)
    config.quoting.instrument_ids = split_list(config.quoting.instrument_ids)
    config.quoting.symbols = split_list(config.quoting.symbols)
    config.quoting.order_size = float(config.quoting.order_size)

    return config


def load_env() -> None:
    load_dotenv()


def apply_env(config: BotConfig, environ: Optional[Mapping[str, str]] = None) -> BotConfig:
    env = os.environ if environ is None else environ

    token_ids = env.get("TOKEN_IDS") or env.get("TOKEN_ID")
    if token_ids:
        config.quoting.instrument_ids = split_list(token_ids)
    if env.get("TOKEN_SYMBOLS"):
        config.quoting.symbols = split_list(env["TOKEN_SYMBOLS"])
    if env.get("ORDER_SIZE"):
        config.quoting.order_size = float(env["ORDER_SIZE"])
    if env.get("POLL_INTERVAL"):
        config.quoting.poll_interval_seconds = float(env["POLL_INTERVAL"])
    if env.get("TICK_DELAY"):
        config.quoting.tick_delay_seconds = float(env["TICK_DELAY"])
    if env.get("PROB_API_BASE"):
        config.venue.base_url = env["PROB_API_BASE"]
    config.venue.api_key = env.get("PROB_API_KEY", config.venue.api_key)
    config.venue.api_secret = env.get("PROB_API_SECRET", config.venue.api_secret)
    config.venue.api_passphrase = env.get("PROB_API_PASSPHRASE", config.venue.api_passphrase)
    return config


def apply_cli_overrides(config: BotConfig, args: argparse.Namespace) -> BotConfig:
    if args.dry_run is not None:
        config.dry_run = args.dry_run
    if args.token_ids:
        config.quoting.instrument_ids = split_list(args.token_ids)
    if args.symbols:
        config.quoting.symbols = split_list(args.symbols)
    if args.order_size is not None:
        config.quoting.order_size = args.order_size
    if args.poll_interval is not None:
        config.quoting.poll_interval_seconds = args.poll_interval
    if args.tick_delay is not None:
        config.quoting.tick_delay_seconds = args.tick_delay
    if args.log_level:
        config.log_level = args.log_level
    if args.log_file:
        config.log_file = Path(args.log_file)
    if args.no_dashboard:
        config.dashboard = False
    return config


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Single-sided market maker for the Probable CLOB")
    parser.add_argument("--config", help="Path to config.yaml or config.json")
    parser.add_argument("--dry-run", action=argparse.BooleanOptionalAction, default=None)
    parser.add_argument("--token-ids", help="Comma-separated instrument ids")
    parser.add_argument("--symbols", help="Comma-separated display symbols, paired with --token-ids")
    parser.add_argument("--order-size", type=float, help="Quantity for each entry buy")
    parser.add_argument("--poll-interval", type=float, help="Seconds between polling passes")
    parser.add_argument("--tick-delay", type=float, help="Seconds between instrument ticks")
    parser.add_argument("--log-level", help="Logging level (INFO, DEBUG)")
    parser.add_argument("--log-file", help="Write logs to this file instead of stderr")
    parser.add_argument("--no-dashboard", action="store_true", help="Disable the console dashboard")
    return parser
