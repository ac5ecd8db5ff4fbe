"""Ledger validation package."""

from pocket_ledger.validation.validator import LedgerValidator

__all__ = ["LedgerValidator"]
