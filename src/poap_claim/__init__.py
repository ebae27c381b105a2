"""poap_claim - claim a delivery reward and track it to on-chain settlement."""

__version__ = "0.1.0"
