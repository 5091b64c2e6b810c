"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands and aggregates.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class CreateCartRequest(BaseModel):
    customer_id: str

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                }
            ]
        }
    }


class AddToCartRequest(BaseModel):
    item_id: str
    quantity: int = Field(ge=1, default=1)
    customizations: list[str] = Field(default_factory=list)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "item_id": "margherita",
                    "quantity": 2,
                    "customizations": ["Extra Cheese"],
                }
            ]
        }
    }


class UpdateCartQuantityRequest(BaseModel):
    new_quantity: int


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    cart_id: str
    customer_id: str
    is_delivery: bool = True
    delivery_address: str = ""
    delivery_instructions: str = ""
    special_requests: str = ""

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "cart_id": "cart-001",
                    "customer_id": "cust-001",
                    "is_delivery": True,
                    "delivery_address": "12 High Street, Leeds LS1 4AB",
                    "delivery_instructions": "Ring the bell twice",
                    "special_requests": "No onions",
                }
            ]
        }
    }


class UpdateOrderStatusRequest(BaseModel):
    status: str
    message: str = ""


class CancelOrderRequest(BaseModel):
    reason: str = ""


# ---------------------------------------------------------------------------
# Payment Request Schemas
# ---------------------------------------------------------------------------
class PayForOrderRequest(BaseModel):
    order_id: str
    method: str
    amount: float | None = None
    amount_tendered: float | None = None
    card_number: str | None = None
    card_holder: str | None = None
    expiry_date: date | None = None
    cvv: str | None = None
    cheque_number: str | None = None
    bank_name: str | None = None
    check_date: date | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "order_id": "ord-001",
                    "method": "Cash",
                    "amount_tendered": 40.00,
                },
                {
                    "order_id": "ord-001",
                    "method": "Credit",
                    "card_number": "4111 1111 1111 1111",
                    "card_holder": "Jane Smith",
                    "expiry_date": "2030-12-31",
                    "cvv": "123",
                },
            ]
        }
    }


class ClearChequeRequest(BaseModel):
    outcome: str = "Cleared"


class RefundPaymentRequest(BaseModel):
    reason: str = ""


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CartIdResponse(BaseModel):
    cart_id: str


class OrderIdResponse(BaseModel):
    order_id: str


class PaymentIdResponse(BaseModel):
    payment_id: str


class StatusResponse(BaseModel):
    status: str = "ok"


class CartLineView(BaseModel):
    item_id: str
    name: str
    quantity: int
    unit_price: float
    customizations: list[str]
    line_total: float


class CartView(BaseModel):
    cart_id: str
    customer_id: str
    items: list[CartLineView]
    item_count: int
    total: float


class OrderLineView(BaseModel):
    item_id: str
    name: str
    quantity: int
    unit_price: float
    customizations: list[str]
    line_total: float


class StatusUpdateView(BaseModel):
    status: str
    message: str | None = None
    recorded_at: datetime


class OrderView(BaseModel):
    order_id: str
    customer_id: str
    status: str
    payment_status: str
    payment_id: str | None = None
    is_delivery: bool
    lines: list[OrderLineView]
    subtotal: float
    tax_amount: float
    delivery_fee: float
    total_amount: float
    currency: str
    estimated_ready_at: datetime | None = None
    delivered_at: datetime | None = None
    history: list[StatusUpdateView]
    summary: str


class PaymentView(BaseModel):
    payment_id: str
    order_id: str
    method: str
    amount: float
    status: str
    approved: bool
    failure_reason: str | None = None
    change_due: float | None = None
    details: str
