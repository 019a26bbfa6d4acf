"""
Order, payment and hosted-checkout writes against the upstream proxy.

These calls create state upstream, so they are sent exactly once. A 503
carrying ``storeOffline`` means online ordering is switched off and is raised
as StoreOfflineError.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

import httpx

from catalog_service.domain.entities import AppliedDiscount, DiscountType, OrderLine
from catalog_service.domain.exceptions import (
    ClientError,
    NetworkError,
    ServerError,
    StoreOfflineError,
    ValidationError,
)
from catalog_service.infrastructure.catalog_api_client import CatalogApiClient
from catalog_service.infrastructure.retrying_client import parse_error_body
from catalog_service.pricing import calculate_cart_subtotal, selected_options

logger = logging.getLogger(__name__)


@dataclass
class OrderResult:
    """Outcome of a successful order creation."""

    order_id: Optional[str]
    total: int
    discount_amount: int
    applied_discounts: List[AppliedDiscount] = field(default_factory=list)
    order: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PaymentResult:
    success: bool
    transaction_id: Optional[str]
    payment: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CheckoutResult:
    checkout_url: str
    order_id: Optional[str] = None


def _money(amount: int, currency: str) -> Dict[str, Any]:
    return {"amount": amount, "currency": currency}


def _build_line_item(line: OrderLine, note: str, currency: str) -> Dict[str, Any]:
    modifiers = []
    for option in selected_options(line.product, line.selections):
        if option.price_delta is None or option.price_delta <= 0:
            continue
        modifier: Dict[str, Any] = {
            "base_price_money": _money(option.price_delta, currency),
            "quantity": "1",
        }
        if option.id:
            modifier["catalog_object_id"] = option.id
        else:
            modifier["name"] = option.name
        modifiers.append(modifier)

    chosen = []
    for value in line.selections.values():
        chosen.append(value if isinstance(value, str) else ", ".join(value))

    line_item: Dict[str, Any] = {
        "name": line.product.name,
        "quantity": str(line.quantity),
        "base_price_money": _money(line.product.price, currency),
    }
    if chosen:
        line_item["variation_name"] = ", ".join(chosen)

    line_note = "\n\n".join(part for part in (line.special_instructions, note) if part)
    if line_note:
        line_item["note"] = line_note
    if modifiers:
        line_item["modifiers"] = modifiers
    return line_item


def build_order_request(
    lines: Sequence[OrderLine],
    location_id: str,
    applied_discounts: Iterable[AppliedDiscount] = (),
    pickup_note: str = "",
    currency: str = "USD",
) -> Dict[str, Any]:
    """
    Build the upstream order payload.

    Line items carry the product base price; options with a positive price
    delta become priced modifiers. Only order-level discounts are attached.

    Raises:
        ValueError: If there are no lines
    """
    if not lines:
        raise ValueError("Invalid checkout data: missing required fields")

    order: Dict[str, Any] = {
        "location_id": location_id,
        "pricing_options": {"auto_apply_taxes": True},
        "line_items": [_build_line_item(line, pickup_note, currency) for line in lines],
    }

    order_discounts = []
    for applied in applied_discounts:
        if applied.applied_to != "order":
            continue
        entry: Dict[str, Any] = {"name": applied.discount.name, "scope": "ORDER"}
        if applied.discount.type == DiscountType.PERCENTAGE:
            entry["percentage"] = str(applied.discount.value)
        elif applied.discount.type == DiscountType.FIXED_AMOUNT:
            entry["amount_money"] = _money(applied.applied_amount, currency)
        order_discounts.append(entry)

    if order_discounts:
        order["discounts"] = order_discounts

    return {"location_id": location_id, "order": order}


class CheckoutGateway:
    """Sends order and payment writes through the catalog API client."""

    def __init__(self, api_client: CatalogApiClient, currency: str = "USD"):
        self.api_client = api_client
        self.currency = currency

    async def _post(self, path: str, payload: Dict[str, Any], operation: str) -> Dict[str, Any]:
        try:
            response = await self.api_client.post(path, payload)
        except (httpx.TransportError, TimeoutError, OSError) as e:
            raise NetworkError(operation, f"{type(e).__name__}: {e}") from e

        if response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = None
            if not isinstance(body, dict):
                raise ValidationError(operation, "Invalid response: body is not a JSON object")
            return body

        body, reason = parse_error_body(response)
        if response.status_code == 503 and isinstance(body, dict) and body.get("storeOffline"):
            logger.warning(f"Store offline, rejected '{operation}'")
            raise StoreOfflineError(operation)

        if 400 <= response.status_code < 500:
            raise ClientError(operation, response.status_code, reason)
        raise ServerError(operation, response.status_code, reason)

    async def create_order(
        self,
        lines: Sequence[OrderLine],
        location_id: str,
        applied_discounts: Sequence[AppliedDiscount] = (),
        pickup_note: str = "",
    ) -> OrderResult:
        """
        Create an order upstream.

        Returns:
            OrderResult with the upstream total, falling back to the local
            subtotal when the upstream omits it

        Raises:
            StoreOfflineError: Online ordering is switched off
            UpstreamError: Any other failure
        """
        payload = build_order_request(
            lines, location_id, applied_discounts, pickup_note, self.currency
        )
        data = await self._post("/orders", payload, "createOrder")

        order = data.get("order") or {}
        total = (order.get("total_money") or {}).get("amount")
        if total is None:
            total = calculate_cart_subtotal(lines)

        result = OrderResult(
            order_id=order.get("id"),
            total=total,
            discount_amount=sum(applied.applied_amount for applied in applied_discounts),
            applied_discounts=list(applied_discounts),
            order=order,
        )
        logger.info(
            f"Created order {result.order_id}",
            extra={"extra_fields": {"total": result.total, "lines": len(lines)}},
        )
        return result

    async def process_payment(self, token: str, amount: int, order_id: Optional[str] = None) -> PaymentResult:
        """Charge a tokenized payment source."""
        data = await self._post(
            "/payment",
            {"token": token, "amount": amount, "orderId": order_id},
            "processPayment",
        )
        payment = data.get("payment") or {}
        return PaymentResult(success=True, transaction_id=payment.get("id"), payment=payment)

    async def create_checkout(self, checkout_data: Dict[str, Any]) -> CheckoutResult:
        """
        Create a hosted checkout page.

        Raises:
            StoreOfflineError: Online ordering is switched off
            ValidationError: The upstream answer carries no checkout URL
        """
        data = await self._post("/create-checkout", checkout_data, "createCheckout")
        checkout_url = data.get("checkoutUrl")
        if not checkout_url:
            raise ValidationError(
                "createCheckout",
                "Invalid response: missing required field 'checkoutUrl'",
                missing_field="checkoutUrl",
            )
        return CheckoutResult(checkout_url=checkout_url, order_id=data.get("orderId"))
