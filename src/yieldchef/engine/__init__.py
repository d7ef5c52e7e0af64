"""Reward accrual, position bookkeeping and allocation voting."""
