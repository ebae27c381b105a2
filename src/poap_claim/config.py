"""Configuration loading: TOML file + environment variables + event definitions."""

from __future__ import annotations

import json
import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from poap_claim.models.config import ClaimConfig
from poap_claim.models.event import ClaimEvent


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "POAP_CLAIM_",
) -> ClaimConfig:
    """Load tracker configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (POAP_CLAIM_API_KEY, etc.)
        2. TOML config file
        3. Defaults from ClaimConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = ClaimConfig()

    # ── Tracker section ────────────────────────────────────
    tracker = raw.get("tracker", {})
    if v := tracker.get("poll_interval"):
        cfg.poll_interval = float(v)
    if v := tracker.get("request_timeout"):
        cfg.request_timeout = float(v)
    if v := tracker.get("log_level"):
        cfg.log_level = str(v)

    # ── API section ────────────────────────────────────────
    api = raw.get("api", {})
    if v := api.get("url"):
        cfg.api_url = str(v)
    if v := api.get("api_key"):
        cfg.api_key = str(v)

    # ── Chain section ──────────────────────────────────────
    chain = raw.get("chain", {})
    if "origin_rpc_url" in chain:
        cfg.origin_rpc_url = str(chain["origin_rpc_url"])
    if v := chain.get("delivery_rpc_url"):
        cfg.delivery_rpc_url = str(v)

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if v := storage.get("db_path"):
        cfg.db_path = str(v)

    # ── Environment variable overrides (highest priority) ──
    if url := os.environ.get(f"{env_prefix}API_URL"):
        cfg.api_url = url
    if key := os.environ.get(f"{env_prefix}API_KEY"):
        cfg.api_key = key
    if rpc := os.environ.get(f"{env_prefix}ORIGIN_RPC_URL"):
        cfg.origin_rpc_url = rpc
    if rpc := os.environ.get(f"{env_prefix}DELIVERY_RPC_URL"):
        cfg.delivery_rpc_url = rpc
    if db := os.environ.get(f"{env_prefix}DB_PATH"):
        cfg.db_path = db
    if interval := os.environ.get(f"{env_prefix}POLL_INTERVAL"):
        cfg.poll_interval = float(interval)

    # Expand ~ in paths
    if cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())

    return cfg


def load_event(event_path: str | Path) -> ClaimEvent:
    """Load a claim event definition from a JSON file."""
    p = Path(event_path).expanduser()
    with open(p) as f:
        data = json.load(f)
    return ClaimEvent.from_dict(data)
