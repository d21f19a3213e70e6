from backend_solview.services.transaction_service import (
    TransactionService,
    build_transaction_service,
    load_registry,
)

__all__ = ["TransactionService", "build_transaction_service", "load_registry"]
