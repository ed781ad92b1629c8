"""Balance projection, yield accrual and withdrawal rules."""
