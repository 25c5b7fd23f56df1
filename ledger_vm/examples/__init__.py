"""Example contracts built on the ledger_vm runtime."""
