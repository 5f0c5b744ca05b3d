"""Review Ledger - prediction review proxy, verification ledger and metrics."""
