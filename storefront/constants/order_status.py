from enum import Enum


class OrderStatus(str, Enum):
    # the only status the checkout pipeline writes; the payment webhook
    # moves orders on from here
    PAYMENT_PENDING = "PAYMENT_PENDING"
    PAID = "PAID"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    CANCELLED = "CANCELLED"


class FulfillmentStatus(str, Enum):
    PENDING = "PENDING"
    PREPARING = "PREPARING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"


class PaymentStatus(str, Enum):
    CREATED = "CREATED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ReservationStatus(str, Enum):
    ACTIVE = "ACTIVE"
    RELEASED = "RELEASED"


class OrderEventType(str, Enum):
    ORDER_PLACED = "order_placed"
    STOCK_RESERVED = "stock_reserved"
    PAYMENT_SESSION_CREATED = "payment_session_created"
