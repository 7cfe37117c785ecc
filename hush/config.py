"""Configuration loader — reads config.yaml and interpolates env vars."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from eth_utils import is_hex_address

from .amounts import parse_token_amount
from .errors import ConfigurationError, UsageError

logger = logging.getLogger(__name__)

DEFAULT_FEE_BUFFER_BPS = 2_000
FEE_BPS_DENOMINATOR = 10_000
DEFAULT_FEE_BUFFER_MIN = "0.002"

FEE_POLICIES = ("skip", "block")
STORAGE_BACKENDS = ("file", "memory")

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChainConfig:
    name: str = "arbitrum"
    chain_id: int = 42161
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 30


@dataclass(frozen=True)
class ContractsConfig:
    adapter: str = ""
    privacy_executor: str = ""


@dataclass(frozen=True)
class TokenConfig:
    address: str = ""
    symbol: str = ""
    decimals: int = 18


@dataclass(frozen=True)
class TokensConfig:
    supply: TokenConfig = field(
        default_factory=lambda: TokenConfig(symbol="USDC", decimals=6)
    )
    borrow: TokenConfig = field(
        default_factory=lambda: TokenConfig(symbol="WETH", decimals=18)
    )


@dataclass(frozen=True)
class FeeBufferConfig:
    buffer_bps: int = DEFAULT_FEE_BUFFER_BPS
    buffer_min: int = 2_000
    on_quote_unavailable: str = "skip"


@dataclass(frozen=True)
class ReconcileConfig:
    attempts: int = 3
    delay_seconds: float = 1.5


@dataclass(frozen=True)
class EngineConfig:
    base_url: str = ""
    timeout: int = 120
    legacy_cache_dirs: tuple[str, ...] = ()


@dataclass(frozen=True)
class StorageConfig:
    backend: str = "file"
    path: str = ".data/privacy-session.json"


@dataclass(frozen=True)
class WalletConfig:
    private_key: str = field(default="", repr=False)


@dataclass(frozen=True)
class AppConfig:
    debug: bool = False
    chain: ChainConfig = field(default_factory=ChainConfig)
    contracts: ContractsConfig = field(default_factory=ContractsConfig)
    tokens: TokensConfig = field(default_factory=TokensConfig)
    fees: FeeBufferConfig = field(default_factory=FeeBufferConfig)
    reconcile: ReconcileConfig = field(default_factory=ReconcileConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    wallet: WalletConfig = field(default_factory=WalletConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


def _parse_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_chain(raw: dict[str, Any]) -> ChainConfig:
    endpoints = [e.strip() for e in raw.get("rpc_endpoints", []) if not _blank(e)]
    return ChainConfig(
        name=raw.get("name", "arbitrum"),
        chain_id=int(raw.get("chain_id", 42161)),
        rpc_endpoints=tuple(endpoints),
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
    )


def _build_contracts(raw: dict[str, Any]) -> ContractsConfig:
    return ContractsConfig(
        adapter=(raw.get("adapter") or "").strip(),
        privacy_executor=(raw.get("privacy_executor") or "").strip(),
    )


def _build_token(raw: dict[str, Any], default: TokenConfig) -> TokenConfig:
    return TokenConfig(
        address=(raw.get("address") or "").strip(),
        symbol=raw.get("symbol") or default.symbol,
        decimals=int(raw.get("decimals", default.decimals)),
    )


def _build_tokens(raw: dict[str, Any]) -> TokensConfig:
    defaults = TokensConfig()
    return TokensConfig(
        supply=_build_token(raw.get("supply", {}), defaults.supply),
        borrow=_build_token(raw.get("borrow", {}), defaults.borrow),
    )


def _build_fees(raw: dict[str, Any], supply_decimals: int) -> FeeBufferConfig:
    raw_bps = raw.get("buffer_bps")
    bps = DEFAULT_FEE_BUFFER_BPS
    if not _blank(raw_bps):
        try:
            bps = int(str(raw_bps).strip())
            if bps < 0:
                raise ValueError(bps)
        except ValueError:
            logger.debug("Invalid fee buffer bps %r, using default", raw_bps)
            bps = DEFAULT_FEE_BUFFER_BPS

    raw_min = raw.get("buffer_min")
    floor = parse_token_amount(DEFAULT_FEE_BUFFER_MIN, supply_decimals)
    if not _blank(raw_min):
        try:
            floor = parse_token_amount(str(raw_min), supply_decimals)
        except UsageError:
            logger.debug("Invalid fee buffer min %r, using default", raw_min)

    return FeeBufferConfig(
        buffer_bps=bps,
        buffer_min=floor,
        on_quote_unavailable=(raw.get("on_quote_unavailable") or "skip").lower(),
    )


def _build_reconcile(raw: dict[str, Any]) -> ReconcileConfig:
    return ReconcileConfig(
        attempts=int(raw.get("attempts", 3)),
        delay_seconds=float(raw.get("delay_seconds", 1.5)),
    )


def _build_engine(raw: dict[str, Any]) -> EngineConfig:
    return EngineConfig(
        base_url=(raw.get("base_url") or "").strip().rstrip("/"),
        timeout=int(raw.get("timeout", 120)),
        legacy_cache_dirs=tuple(
            d for d in raw.get("legacy_cache_dirs", []) if not _blank(d)
        ),
    )


def _build_storage(raw: dict[str, Any]) -> StorageConfig:
    path = raw.get("path")
    return StorageConfig(
        backend=(raw.get("backend") or "file").lower(),
        path=path if not _blank(path) else StorageConfig.path,
    )


def _build_wallet(raw: dict[str, Any]) -> WalletConfig:
    return WalletConfig(private_key=(raw.get("private_key") or "").strip())


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    tokens = _build_tokens(raw.get("tokens", {}))
    cfg = AppConfig(
        debug=_parse_flag(raw.get("debug", False)),
        chain=_build_chain(raw.get("chain", {})),
        contracts=_build_contracts(raw.get("contracts", {})),
        tokens=tokens,
        fees=_build_fees(raw.get("fees", {}), tokens.supply.decimals),
        reconcile=_build_reconcile(raw.get("reconcile", {})),
        engine=_build_engine(raw.get("engine", {})),
        storage=_build_storage(raw.get("storage", {})),
        wallet=_build_wallet(raw.get("wallet", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on structurally invalid configuration.

    Address-shaped values are checked lazily by ``require_address`` so that a
    bad address fails the action that needs it, not the whole process.
    """
    if cfg.chain.chain_id <= 0:
        raise ValueError(f"Invalid chain id: {cfg.chain.chain_id}")
    if cfg.fees.on_quote_unavailable not in FEE_POLICIES:
        raise ValueError(
            f"Unknown fee policy '{cfg.fees.on_quote_unavailable}' "
            f"(expected one of {', '.join(FEE_POLICIES)})"
        )
    if cfg.storage.backend not in STORAGE_BACKENDS:
        raise ValueError(
            f"Unknown storage backend '{cfg.storage.backend}' "
            f"(expected one of {', '.join(STORAGE_BACKENDS)})"
        )
    if cfg.reconcile.attempts < 1:
        raise ValueError("reconcile.attempts must be at least 1")
    if cfg.reconcile.delay_seconds < 0:
        raise ValueError("reconcile.delay_seconds must not be negative")


def require_address(key: str, value: str) -> str:
    """Return ``value`` if it is a 0x-prefixed 20-byte hex address."""
    if not value:
        raise ConfigurationError(f"Missing config key: {key}")
    if not (value.startswith("0x") and is_hex_address(value)):
        raise ConfigurationError(f"Invalid address in config key {key}: {value}")
    return value
