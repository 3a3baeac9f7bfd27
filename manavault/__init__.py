"""ManaVault: canonical card index and search over MTGJSON printings."""
