# payments_adapter package
__version__ = "0.1.0"

from .database import (
    PaymentAttempt,
    Refund,
    Payout,
    PayoutStatus,
    init_db,
    close_db,
    get_db,
)
from .services import PaymentService

# Connector exports
from .connectors import (
    ConnectorBase,
    HelcimConnector,
    AttemptStatus,
    RefundStatus,
)

# Payout exports
from .payouts import (
    PayoutService,
    PayoutCreateRequest,
    PayoutResponse,
    MerchantAccount,
)
