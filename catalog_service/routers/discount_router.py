"""
Discount API router.
"""

from typing import Any, List, Optional

import structlog
from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from catalog_service.dependencies import get_catalog_service
from catalog_service.domain.entities import CartItem
from catalog_service.pricing import format_price
from catalog_service.services.catalog_service import CatalogService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["discounts"])


class CartItemModel(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=1)
    category_ids: List[str] = Field(default_factory=list)
    unit_price: int = Field(0, ge=0, description="Unit price in minor units")


class ValidateDiscountRequest(BaseModel):
    """Discount code validation request."""

    code: str = Field(..., min_length=1, max_length=64, json_schema_extra={"example": "WELCOME10"})
    items: List[CartItemModel] = Field(default_factory=list)
    subtotal: int = Field(..., ge=0, description="Cart subtotal in minor units")


class ValidateDiscountResponse(BaseModel):
    is_valid: bool
    applied_amount: Optional[int] = None
    applied_amount_display: Optional[str] = None
    discount: Optional[Any] = None
    error: Optional[str] = None


@router.post(
    "/discounts/validate",
    response_model=ValidateDiscountResponse,
    summary="Validate a discount code against a cart",
)
async def validate_discount(
    request: ValidateDiscountRequest,
    service: CatalogService = Depends(get_catalog_service),
):
    cart_items = [
        CartItem(
            product_id=item.product_id,
            quantity=item.quantity,
            category_ids=tuple(item.category_ids),
            unit_price=item.unit_price,
        )
        for item in request.items
    ]

    result = await service.discount_engine.validate(request.code, cart_items, request.subtotal)
    logger.info("Discount validated", code=request.code, valid=result.is_valid, error=result.error)

    return ValidateDiscountResponse(
        is_valid=result.is_valid,
        applied_amount=result.applied_amount,
        applied_amount_display=(
            format_price(result.applied_amount) if result.applied_amount is not None else None
        ),
        discount=jsonable_encoder(result.discount) if result.discount is not None else None,
        error=result.error,
    )
