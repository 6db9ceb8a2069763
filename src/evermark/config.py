"""Evermark configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site, not in this module)
  2. Environment variables  (EVERMARK_DB_PATH, EVERMARK_BOT_USERNAME, ...)
  3. Per-project evermark.yaml
  4. Global ~/.evermark/config.yaml
  5. Hardcoded defaults

Config files must never contain secrets. Neynar, Pinata and wallet
credentials are read from the environment only (see load_secrets()).
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".evermark"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "evermark.yaml"

# Key names that look like credentials are forbidden in every config file.
# Does NOT match legitimate keys like signer_header or token_uri_base.
_SECRET_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|^jwt$|_jwt$"
    r"|private[_\-]?key"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["database", "server", "bot", "neynar", "ipfs", "http", "chain", "insights", "storage"]
)


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class DatabaseCfg:
    path: str = ".evermark.db"


@dataclass
class ServerCfg:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class BotCfg:
    """Farcaster bot identity and reply formatting (evermark.yaml: bot:).

    Attributes:
        username: Handle the bot answers to (without the leading @).
        fid: Farcaster id of the bot account; 0 disables follow/reaction handling.
        max_reply_length: Maximum characters per published cast.
        thread_delay: Seconds to wait between parts of a threaded reply.
    """

    username: str = "emark-bot"
    fid: int = 0
    max_reply_length: int = 280
    thread_delay: float = 1.0


@dataclass
class NeynarCfg:
    api_base: str = "https://api.neynar.com"


@dataclass
class IpfsCfg:
    api_base: str = "https://api.pinata.cloud"
    gateway: str = "https://gateway.pinata.cloud/ipfs"


@dataclass
class HttpCfg:
    """Outbound HTTP settings. Every external call uses this timeout (seconds)."""

    timeout: float = 10.0


@dataclass
class ChainCfg:
    """NFT minting (evermark.yaml: chain:). Off unless enabled and BOT_PRIVATE_KEY is set."""

    enabled: bool = False
    rpc_url: str = "https://mainnet.base.org"
    nft_contract: str = "0x504a0BDC3aea29237a6f8E53D0ECDA8e4c9009F2"
    max_workers: int = 2


@dataclass
class InsightsCfg:
    """LLM-backed /insights (evermark.yaml: insights:)."""

    enabled: bool = False
    model: str = "openai/gpt-4o-mini"
    max_items: int = 20


@dataclass
class StorageCfg:
    cost_per_mb_usd: float = 0.01


@dataclass
class EvermarkConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    database: DatabaseCfg = field(default_factory=DatabaseCfg)
    server: ServerCfg = field(default_factory=ServerCfg)
    bot: BotCfg = field(default_factory=BotCfg)
    neynar: NeynarCfg = field(default_factory=NeynarCfg)
    ipfs: IpfsCfg = field(default_factory=IpfsCfg)
    http: HttpCfg = field(default_factory=HttpCfg)
    chain: ChainCfg = field(default_factory=ChainCfg)
    insights: InsightsCfg = field(default_factory=InsightsCfg)
    storage: StorageCfg = field(default_factory=StorageCfg)


@dataclass(frozen=True)
class Secrets:
    """Credentials read from the environment. Empty string means "not configured"."""

    neynar_api_key: str = ""
    webhook_secret: str = ""
    bot_signer_uuid: str = ""
    pinata_jwt: str = ""
    bot_private_key: str = ""


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_secrets(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any credential-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _SECRET_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Config '{source}' contains a forbidden key '{full}'.\n"
                        f"  Secrets must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _validate_http_url(value: str, key: str) -> None:
    if not value.startswith(("https://", "http://")):
        raise ConfigError(f"{key} must be an http(s) URL, got '{value}'")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}'; ignored.",
                UserWarning,
                stacklevel=4,
            )


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _cfg_from_dict(data: dict[str, Any]) -> EvermarkConfig:
    """Build an *EvermarkConfig* from a merged raw YAML dict."""
    cfg = EvermarkConfig()

    if "database" in data:
        d = data["database"] or {}
        cfg.database = DatabaseCfg(path=str(d.get("path", cfg.database.path)))

    if "server" in data:
        s = data["server"] or {}
        cfg.server = ServerCfg(
            host=str(s.get("host", cfg.server.host)),
            port=int(s.get("port", cfg.server.port)),
        )

    if "bot" in data:
        b = data["bot"] or {}
        cfg.bot = BotCfg(
            username=str(b.get("username", cfg.bot.username)).lstrip("@"),
            fid=int(b.get("fid", cfg.bot.fid)),
            max_reply_length=int(b.get("max_reply_length", cfg.bot.max_reply_length)),
            thread_delay=float(b.get("thread_delay", cfg.bot.thread_delay)),
        )

    if "neynar" in data:
        n = data["neynar"] or {}
        cfg.neynar = NeynarCfg(api_base=str(n.get("api_base", cfg.neynar.api_base)))

    if "ipfs" in data:
        i = data["ipfs"] or {}
        cfg.ipfs = IpfsCfg(
            api_base=str(i.get("api_base", cfg.ipfs.api_base)),
            gateway=str(i.get("gateway", cfg.ipfs.gateway)),
        )

    if "http" in data:
        h = data["http"] or {}
        cfg.http = HttpCfg(timeout=float(h.get("timeout", cfg.http.timeout)))

    if "chain" in data:
        c = data["chain"] or {}
        cfg.chain = ChainCfg(
            enabled=_as_bool(c.get("enabled", cfg.chain.enabled)),
            rpc_url=str(c.get("rpc_url", cfg.chain.rpc_url)),
            nft_contract=str(c.get("nft_contract", cfg.chain.nft_contract)),
            max_workers=int(c.get("max_workers", cfg.chain.max_workers)),
        )

    if "insights" in data:
        ins = data["insights"] or {}
        cfg.insights = InsightsCfg(
            enabled=_as_bool(ins.get("enabled", cfg.insights.enabled)),
            model=str(ins.get("model", cfg.insights.model)),
            max_items=int(ins.get("max_items", cfg.insights.max_items)),
        )

    if "storage" in data:
        st = data["storage"] or {}
        cfg.storage = StorageCfg(
            cost_per_mb_usd=float(st.get("cost_per_mb_usd", cfg.storage.cost_per_mb_usd))
        )

    return cfg


def _apply_env_overrides(cfg: EvermarkConfig) -> EvermarkConfig:
    """Apply EVERMARK_* environment variable overrides."""
    if path := os.environ.get("EVERMARK_DB_PATH"):
        cfg.database.path = path
    if username := os.environ.get("EVERMARK_BOT_USERNAME"):
        cfg.bot.username = username.lstrip("@")
    if fid := os.environ.get("EVERMARK_BOT_FID"):
        try:
            cfg.bot.fid = int(fid)
        except ValueError as exc:
            raise ConfigError(f"EVERMARK_BOT_FID must be an integer, got '{fid}'") from exc
    if timeout := os.environ.get("EVERMARK_HTTP_TIMEOUT"):
        try:
            cfg.http.timeout = float(timeout)
        except ValueError as exc:
            raise ConfigError(
                f"EVERMARK_HTTP_TIMEOUT must be a number, got '{timeout}'"
            ) from exc
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> EvermarkConfig:
    """Load and return a merged *EvermarkConfig*.

    Applies layers in order: global → per-project → env vars.

    Args:
        project_dir: Directory to search for *evermark.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If a config file contains credential-like keys, or a
            service URL is not http(s).
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    for path in (global_path, search_dir / _PROJECT_CONFIG_NAME):
        if path.exists():
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            if not isinstance(raw, dict):
                raise ConfigError(f"Config '{path}' must be a YAML mapping.")
            _check_no_secrets(raw, path)
            _warn_unknown_keys(raw, path)
            merged = _deep_merge(merged, raw)

    cfg = _cfg_from_dict(merged)

    _validate_http_url(cfg.neynar.api_base, "neynar.api_base")
    _validate_http_url(cfg.ipfs.api_base, "ipfs.api_base")
    _validate_http_url(cfg.chain.rpc_url, "chain.rpc_url")

    return _apply_env_overrides(cfg)


def load_secrets() -> Secrets:
    """Read credentials from the environment."""
    return Secrets(
        neynar_api_key=os.environ.get("NEYNAR_API_KEY", ""),
        webhook_secret=os.environ.get("NEYNAR_WEBHOOK_SECRET", ""),
        bot_signer_uuid=os.environ.get("BOT_SIGNER_UUID", ""),
        pinata_jwt=os.environ.get("PINATA_JWT", ""),
        bot_private_key=os.environ.get("BOT_PRIVATE_KEY", ""),
    )


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.evermark/config.yaml`` with defaults if it does not exist.

    Creates the parent directory with mode 0o700 and the file with mode 0o600.

    Returns:
        Path to the global config file.
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# Evermark global configuration. No secrets here.\n"
            "# Credentials are read from environment variables:\n"
            "#   export NEYNAR_API_KEY=...\n"
            "#   export NEYNAR_WEBHOOK_SECRET=...\n"
            "#   export BOT_SIGNER_UUID=...\n"
            "#   export PINATA_JWT=...\n"
            "\n"
            "bot:\n"
            "  username: emark-bot\n"
            "\n"
            "http:\n"
            "  timeout: 10\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target
