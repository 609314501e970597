"""Database module for payment attempt, refund and payout persistence."""

from .models import (
    Base,
    PaymentAttempt,
    Refund,
    Payout,
    PayoutStatus,
)
from .session import (
    get_db,
    get_database_url,
    init_db,
    close_db,
    create_async_engine,
    get_async_session_factory,
)
from .repository import (
    PaymentAttemptRepository,
    RefundRepository,
    PayoutRepository,
)

__all__ = [
    # Models
    "Base",
    "PaymentAttempt",
    "Refund",
    "Payout",
    "PayoutStatus",
    # Session management
    "get_db",
    "get_database_url",
    "init_db",
    "close_db",
    "create_async_engine",
    "get_async_session_factory",
    # Repositories
    "PaymentAttemptRepository",
    "RefundRepository",
    "PayoutRepository",
]
