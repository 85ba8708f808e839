"""
Application Services

Token ledger and registry lookup used by the pipeline.
"""

from .token_ledger import TokenLedger, TokenCheck, TokenCheckReason, TokenReservation
from .registry_lookup import RegistryLookup, split_ingredients

__all__ = [
    "TokenLedger",
    "TokenCheck",
    "TokenCheckReason",
    "TokenReservation",
    "RegistryLookup",
    "split_ingredients",
]
