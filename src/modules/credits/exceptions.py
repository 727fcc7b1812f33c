class CreditValidationError(ValueError):
    """Raised for malformed ledger requests, before any store access."""
