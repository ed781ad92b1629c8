"""In-memory stores for ledger state."""

from invest_ledger.store.charges import ChargeStore
from invest_ledger.store.ledger import LedgerStore

__all__ = ["ChargeStore", "LedgerStore"]
