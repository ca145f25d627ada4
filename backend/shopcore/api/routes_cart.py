from typing import Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from shopcore.api.deps import CART_COOKIE, get_cart_cookie, get_customer_id
from shopcore.db import get_db
from shopcore.schemas.cart_schema import AddItemIn, CartOut, UpdateItemIn
from shopcore.services.cart_service import CartService

router = APIRouter(prefix="/api/cart", tags=["cart"])


def current_cart(
    svc: CartService,
    response: Response,
    customer_id: Optional[str],
    cart_cookie: Optional[str],
) -> CartOut:
    """
    The cart this request works on: the customer's cart (with any guest cart
    from the cookie merged in) when signed in, otherwise the guest cart,
    created on first touch.
    """
    if customer_id:
        cart = svc.resolve_customer_cart(customer_id, cart_cookie)
        if cart_cookie and cart_cookie != cart.id:
            response.delete_cookie(CART_COOKIE)
        return cart
    cart = svc.get_or_create_cart(cart_cookie)
    if cart.id != cart_cookie:
        response.set_cookie(CART_COOKIE, cart.id, httponly=True, samesite="lax")
    return cart


@router.get("", response_model=CartOut, summary="Get cart")
def get_cart(
    response: Response,
    db: Session = Depends(get_db),
    customer_id: Optional[str] = Depends(get_customer_id),
    cart_cookie: Optional[str] = Depends(get_cart_cookie),
):
    return current_cart(CartService(db), response, customer_id, cart_cookie)


@router.post("/items", response_model=CartOut, summary="Add item to cart")
def add_item(
    payload: AddItemIn,
    response: Response,
    db: Session = Depends(get_db),
    customer_id: Optional[str] = Depends(get_customer_id),
    cart_cookie: Optional[str] = Depends(get_cart_cookie),
):
    svc = CartService(db)
    cart = current_cart(svc, response, customer_id, cart_cookie)
    return svc.add_item(cart.id, payload.variant_id, payload.quantity)


@router.patch("/items/{item_id}", response_model=CartOut, summary="Change item quantity")
def update_item(
    item_id: str,
    payload: UpdateItemIn,
    response: Response,
    db: Session = Depends(get_db),
    customer_id: Optional[str] = Depends(get_customer_id),
    cart_cookie: Optional[str] = Depends(get_cart_cookie),
):
    svc = CartService(db)
    cart = current_cart(svc, response, customer_id, cart_cookie)
    return svc.update_item_quantity(cart.id, item_id, payload.quantity)


@router.delete("/items/{item_id}", response_model=CartOut, summary="Remove item")
def remove_item(
    item_id: str,
    response: Response,
    db: Session = Depends(get_db),
    customer_id: Optional[str] = Depends(get_customer_id),
    cart_cookie: Optional[str] = Depends(get_cart_cookie),
):
    svc = CartService(db)
    cart = current_cart(svc, response, customer_id, cart_cookie)
    return svc.remove_item(cart.id, item_id)
