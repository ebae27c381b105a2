"""Claim flow core - address resolution, submission and reconciliation."""

from poap_claim.claims.reconciler import ReconciliationLoop
from poap_claim.claims.resolver import AddressResolver
from poap_claim.claims.submitter import ClaimSubmitter

__all__ = ["AddressResolver", "ClaimSubmitter", "ReconciliationLoop"]
