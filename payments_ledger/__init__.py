"""Payments ledger: replays a csv transaction log into client balances."""
