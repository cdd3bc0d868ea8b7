PENDING = "pending"
COMPLETED = "completed"
FAILED = "failed"
REFUNDED = "refunded"
EXPIRED = "expired"

PAYMENT_STATUSES = (PENDING, COMPLETED, FAILED, REFUNDED, EXPIRED)
