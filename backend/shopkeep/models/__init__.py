from .inventory import InventoryItem, StockHistoryEntry
from .parties import Party, PartyTransaction, Customer
from .invoices import Invoice, InvoiceLine
from .ledger import LedgerEntry, LedgerSettlement
from .auth import User, SessionToken

__all__ = [
    'InventoryItem', 'StockHistoryEntry',
    'Party', 'PartyTransaction', 'Customer',
    'Invoice', 'InvoiceLine',
    'LedgerEntry', 'LedgerSettlement',
    'User', 'SessionToken',
]
