"""Validation of ledger entry drafts."""

from taxgo.validation.validator import IncompleteDraftError, TransactionValidator

__all__ = ["IncompleteDraftError", "TransactionValidator"]
