"""Storage quota accounting with payment-gated upgrades."""
