"""HTTP API for the investment ledger."""
