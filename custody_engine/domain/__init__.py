"""Domain layer: wallets, ledger, funding and swap orchestration."""
