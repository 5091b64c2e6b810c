"""FastAPI routes for the Ordering domain — carts, orders and payments.

Writes go through Protean commands; reads load the aggregate and shape it
into a response schema.
"""

import json

from fastapi import APIRouter
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    AddToCartRequest,
    CancelOrderRequest,
    CartIdResponse,
    CartLineView,
    CartView,
    ClearChequeRequest,
    CreateCartRequest,
    OrderIdResponse,
    OrderLineView,
    OrderView,
    PayForOrderRequest,
    PaymentIdResponse,
    PaymentView,
    PlaceOrderRequest,
    RefundPaymentRequest,
    StatusResponse,
    StatusUpdateView,
    UpdateCartQuantityRequest,
    UpdateOrderStatusRequest,
)
from ordering.cart.cart import Cart
from ordering.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity
from ordering.cart.management import ClearCart, CreateCart
from ordering.checkout.finalization import PayForOrder
from ordering.checkout.settlement import ClearCheque, RefundPayment
from ordering.order.cancellation import CancelOrder
from ordering.order.history import orders_for_customer
from ordering.order.order import Order
from ordering.order.placement import PlaceOrder
from ordering.order.progress import MarkOrderDelivered, UpdateOrderStatus
from ordering.payment.payment import Payment


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------
def _cart_view(cart: Cart) -> CartView:
    return CartView(
        cart_id=str(cart.id),
        customer_id=str(cart.customer_id),
        items=[
            CartLineView(
                item_id=str(line.item_id),
                name=line.name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                customizations=line.selected_customizations,
                line_total=line.line_total,
            )
            for line in cart.get_items()
        ],
        item_count=cart.item_count(),
        total=cart.total(),
    )


def _order_view(order: Order) -> OrderView:
    return OrderView(
        order_id=str(order.id),
        customer_id=str(order.customer_id),
        status=order.status,
        payment_status=order.payment_status,
        payment_id=order.payment_id,
        is_delivery=order.delivery.is_delivery if order.delivery else True,
        lines=[
            OrderLineView(
                item_id=str(line.item_id),
                name=line.name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                customizations=line.selected_customizations,
                line_total=line.line_total,
            )
            for line in order.get_lines()
        ],
        subtotal=order.pricing.subtotal,
        tax_amount=order.pricing.tax_amount,
        delivery_fee=order.pricing.delivery_fee,
        total_amount=order.pricing.total_amount,
        currency=order.pricing.currency,
        estimated_ready_at=order.estimated_ready_at,
        delivered_at=order.delivered_at,
        history=[
            StatusUpdateView(status=update.status, message=update.message, recorded_at=update.recorded_at)
            for update in order.get_history()
        ],
        summary=order.summary(),
    )


def _payment_view(payment: Payment) -> PaymentView:
    return PaymentView(
        payment_id=str(payment.id),
        order_id=str(payment.order_id),
        method=payment.method,
        amount=payment.amount,
        status=payment.status,
        approved=payment.is_accepted(),
        failure_reason=payment.failure_reason,
        change_due=payment.cash.change_due if payment.cash else None,
        details=payment.details(),
    )


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.post("", status_code=201, response_model=CartIdResponse)
async def create_cart(body: CreateCartRequest) -> CartIdResponse:
    command = CreateCart(customer_id=body.customer_id)
    result = current_domain.process(command, asynchronous=False)
    return CartIdResponse(cart_id=result)


@cart_router.get("/{cart_id}", response_model=CartView)
async def get_cart(cart_id: str) -> CartView:
    cart = current_domain.repository_for(Cart).get(cart_id)
    return _cart_view(cart)


@cart_router.post("/{cart_id}/items", response_model=StatusResponse)
async def add_cart_item(cart_id: str, body: AddToCartRequest) -> StatusResponse:
    command = AddToCart(
        cart_id=cart_id,
        item_id=body.item_id,
        quantity=body.quantity,
        customizations=json.dumps(body.customizations),
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.put("/{cart_id}/items/{item_id}", response_model=StatusResponse)
async def update_cart_item_quantity(cart_id: str, item_id: str, body: UpdateCartQuantityRequest) -> StatusResponse:
    command = UpdateCartQuantity(
        cart_id=cart_id,
        item_id=item_id,
        new_quantity=body.new_quantity,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{cart_id}/items/{item_id}", response_model=StatusResponse)
async def remove_cart_item(cart_id: str, item_id: str) -> StatusResponse:
    command = RemoveFromCart(
        cart_id=cart_id,
        item_id=item_id,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{cart_id}/items", response_model=StatusResponse)
async def clear_cart(cart_id: str) -> StatusResponse:
    current_domain.process(ClearCart(cart_id=cart_id), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def place_order(body: PlaceOrderRequest) -> OrderIdResponse:
    command = PlaceOrder(
        cart_id=body.cart_id,
        customer_id=body.customer_id,
        is_delivery=body.is_delivery,
        delivery_address=body.delivery_address,
        delivery_instructions=body.delivery_instructions,
        special_requests=body.special_requests,
    )
    result = current_domain.process(command, asynchronous=False)
    return OrderIdResponse(order_id=result)


@order_router.get("", response_model=list[OrderView])
async def list_customer_orders(customer_id: str, status: str | None = None) -> list[OrderView]:
    """A customer's order history, newest first."""
    return [_order_view(order) for order in orders_for_customer(customer_id, status)]


@order_router.get("/{order_id}", response_model=OrderView)
async def get_order(order_id: str) -> OrderView:
    order = current_domain.repository_for(Order).get(order_id)
    return _order_view(order)


@order_router.put("/{order_id}/status", response_model=StatusResponse)
async def update_order_status(order_id: str, body: UpdateOrderStatusRequest) -> StatusResponse:
    command = UpdateOrderStatus(
        order_id=order_id,
        status=body.status,
        message=body.message,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.put("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest) -> StatusResponse:
    command = CancelOrder(order_id=order_id, reason=body.reason)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.put("/{order_id}/deliver", response_model=StatusResponse)
async def deliver_order(order_id: str) -> StatusResponse:
    current_domain.process(MarkOrderDelivered(order_id=order_id), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("", status_code=201, response_model=PaymentIdResponse)
async def pay_for_order(body: PayForOrderRequest) -> PaymentIdResponse:
    """Take a payment for an order.

    A declined payment is still created (201); read it back to see
    ``approved`` and ``failure_reason``.
    """
    command = PayForOrder(**body.model_dump(exclude_none=True))
    result = current_domain.process(command, asynchronous=False)
    return PaymentIdResponse(payment_id=result)


@payment_router.get("/{payment_id}", response_model=PaymentView)
async def get_payment(payment_id: str) -> PaymentView:
    payment = current_domain.repository_for(Payment).get(payment_id)
    return _payment_view(payment)


@payment_router.put("/{payment_id}/clearance", response_model=StatusResponse)
async def clear_cheque(payment_id: str, body: ClearChequeRequest) -> StatusResponse:
    command = ClearCheque(payment_id=payment_id, outcome=body.outcome)
    result = current_domain.process(command, asynchronous=False)
    return StatusResponse(status=result)


@payment_router.put("/{payment_id}/refund", response_model=StatusResponse)
async def refund_payment(payment_id: str, body: RefundPaymentRequest) -> StatusResponse:
    command = RefundPayment(payment_id=payment_id, reason=body.reason)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()
