"""External collaborators used by the ledger."""
