"""Cart router - works for members (bearer token) and guests (X-Session-Id)"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.orm import Session

from ...auth import get_optional_user
from ...database import get_db
from ...models import User
from .schemas import (
    AddToCartRequest,
    CartResponse,
    CheckoutRequest,
    CheckoutResponse,
    UpdateCartItemRequest,
)
from .service import CartService

router = APIRouter(prefix="/cart", tags=["Cart"])


def get_cart_service(db: Session = Depends(get_db)) -> CartService:
    return CartService(db)


def cart_owner(
    current_user: Optional[User] = Depends(get_optional_user),
    x_session_id: Optional[str] = Header(None),
    sessionId: Optional[str] = Query(None),
) -> tuple[Optional[int], Optional[str]]:
    """(user_id, session_id) of whoever owns the cart"""
    user_id = current_user.id if current_user else None
    return user_id, x_session_id or sessionId


@router.get("", response_model=CartResponse)
async def get_cart(
    owner: tuple = Depends(cart_owner),
    service: CartService = Depends(get_cart_service),
):
    return service.current_cart(*owner)


@router.post("/items", response_model=CartResponse)
async def add_to_cart(
    data: AddToCartRequest,
    owner: tuple = Depends(cart_owner),
    service: CartService = Depends(get_cart_service),
):
    return service.add_item(data, *owner)


@router.patch("/items/{item_id}", response_model=CartResponse)
async def update_cart_item(
    item_id: int,
    data: UpdateCartItemRequest,
    owner: tuple = Depends(cart_owner),
    service: CartService = Depends(get_cart_service),
):
    return service.update_item(item_id, data, *owner)


@router.delete("/items/{item_id}", response_model=CartResponse)
async def remove_cart_item(
    item_id: int,
    owner: tuple = Depends(cart_owner),
    service: CartService = Depends(get_cart_service),
):
    return service.remove_item(item_id, *owner)


@router.post("/checkout", response_model=CheckoutResponse)
async def checkout(
    data: CheckoutRequest,
    owner: tuple = Depends(cart_owner),
    service: CartService = Depends(get_cart_service),
):
    return service.checkout(data, *owner)
