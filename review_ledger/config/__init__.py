"""Review Ledger configuration."""
