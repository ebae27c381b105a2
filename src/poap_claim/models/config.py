"""Configuration models for the claim tracker."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ClaimConfig:
    """Complete claim tracker configuration."""

    # Tracker
    poll_interval: float = 2.0  # seconds between reconciliation ticks
    request_timeout: float = 15.0  # seconds per network call
    log_level: str = "info"

    # Backend API
    api_url: str = "https://api.poap.tech"
    api_key: str = ""  # loaded from env var POAP_CLAIM_API_KEY

    # Chains
    origin_rpc_url: str = "https://cloudflare-eth.com"  # ENS resolution
    delivery_rpc_url: str = "https://rpc.gnosischain.com"  # settlement receipts

    # Storage
    db_path: str = "~/.poap_claim/state.db"
