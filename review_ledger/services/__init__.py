"""Review ledger services."""
