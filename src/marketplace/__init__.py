"""Perishable-goods marketplace core: stock reservation ledger and order lifecycle."""
