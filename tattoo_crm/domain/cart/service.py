"""Cart service - guest/member carts, variant pricing and checkout into an appointment"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...config import CART_TTL_DAYS
from ...models import ROLE_MEMBER, Branch, Member, User
from ...models_booking import Appointment, Order
from ...models_catalog import Cart, CartItem, Service, ServiceVariant
from ...shared.validators import parse_date
from ...utils.sanitization import sanitize_text
from .pricing import calculate_price_and_duration, get_addon_total, variant_to_pricing_dict
from .schemas import (
    AddToCartRequest,
    CartItemResponse,
    CartResponse,
    CheckoutRequest,
    UpdateCartItemRequest,
)

logger = logging.getLogger(__name__)


class CartService:
    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _require_owner(user_id: Optional[int], session_id: Optional[str]) -> None:
        if not user_id and not session_id:
            raise HTTPException(status_code=400, detail="A logged-in user or sessionId is required")

    def _active_cart_query(self, user_id: Optional[int], session_id: Optional[str]):
        owner_filters = []
        if user_id:
            owner_filters.append(Cart.user_id == user_id)
        if session_id:
            owner_filters.append(Cart.session_id == session_id)
        return self.db.query(Cart).filter(
            or_(*owner_filters),
            Cart.status == "active",
            Cart.expires_at > datetime.utcnow(),
        )

    def find_active_cart(self, user_id: Optional[int], session_id: Optional[str]) -> Optional[Cart]:
        self._require_owner(user_id, session_id)
        return self._active_cart_query(user_id, session_id).order_by(Cart.id.desc()).first()

    def get_or_create_cart(self, user_id: Optional[int], session_id: Optional[str]) -> Cart:
        cart = self.find_active_cart(user_id, session_id)
        if cart:
            return cart

        cart = Cart(
            user_id=user_id,
            session_id=session_id,
            status="active",
            expires_at=datetime.utcnow() + timedelta(days=CART_TTL_DAYS),
        )
        self.db.add(cart)
        self.db.flush()
        logger.info(f"🛒 Created cart {cart.id} (user={user_id}, session={session_id})")
        return cart

    def _pricing_variants(self, service_id: int) -> list[dict]:
        variants = (
            self.db.query(ServiceVariant)
            .filter(ServiceVariant.service_id == service_id, ServiceVariant.is_active.is_(True))
            .all()
        )
        return [variant_to_pricing_dict(v) for v in variants]

    def _check_item_owner(self, item: CartItem, user_id: Optional[int], session_id: Optional[str]) -> None:
        if user_id and item.cart.user_id != user_id:
            raise HTTPException(status_code=400, detail="Not allowed to modify this cart item")
        if not user_id and session_id and item.cart.session_id != session_id:
            raise HTTPException(status_code=400, detail="Not allowed to modify this cart item")

    def add_item(self, data: AddToCartRequest, user_id: Optional[int], session_id: Optional[str]) -> CartResponse:
        self._require_owner(user_id, session_id)
        service = self.db.query(Service).filter(Service.id == data.serviceId).first()
        if not service or not service.is_active:
            raise HTTPException(status_code=404, detail="Service not found or inactive")

        selected = data.selectedVariants or {}
        if not selected.get("size") or not selected.get("color"):
            raise HTTPException(status_code=400, detail="Size and color are required")

        cart = self.get_or_create_cart(user_id, session_id)
        final_price, duration = calculate_price_and_duration(
            service.price, service.duration_min, self._pricing_variants(service.id), selected
        )
        self.db.add(
            CartItem(
                cart_id=cart.id,
                service_id=service.id,
                selected_variants=selected,
                base_price=service.price,
                final_price=final_price,
                estimated_duration=duration,
                notes=sanitize_text(data.notes),
                reference_images=data.referenceImages or [],
            )
        )
        self.db.commit()
        return self.cart_details(cart.id)

    def _get_item(self, item_id: int) -> CartItem:
        item = self.db.query(CartItem).filter(CartItem.id == item_id).first()
        if not item:
            raise HTTPException(status_code=404, detail="Cart item not found")
        return item

    def update_item(
        self, item_id: int, data: UpdateCartItemRequest, user_id: Optional[int], session_id: Optional[str]
    ) -> CartResponse:
        self._require_owner(user_id, session_id)
        item = self._get_item(item_id)
        self._check_item_owner(item, user_id, session_id)

        merged = {**(item.selected_variants or {}), **(data.selectedVariants or {})}
        service = item.service
        final_price, duration = calculate_price_and_duration(
            service.price, service.duration_min, self._pricing_variants(service.id), merged
        )
        item.selected_variants = merged
        item.final_price = final_price
        item.estimated_duration = duration
        if data.notes is not None:
            item.notes = sanitize_text(data.notes)
        if data.referenceImages is not None:
            item.reference_images = data.referenceImages
        self.db.commit()
        return self.cart_details(item.cart_id)

    def remove_item(self, item_id: int, user_id: Optional[int], session_id: Optional[str]) -> CartResponse:
        self._require_owner(user_id, session_id)
        item = self._get_item(item_id)
        self._check_item_owner(item, user_id, session_id)
        cart_id = item.cart_id
        self.db.delete(item)
        self.db.commit()
        return self.cart_details(cart_id)

    def _item_response(self, item: CartItem) -> CartItemResponse:
        service = item.service
        return CartItemResponse(
            id=item.id,
            cartId=item.cart_id,
            serviceId=item.service_id,
            serviceName=service.name if service else None,
            serviceDescription=service.description if service else None,
            serviceImageUrl=service.image_url if service else None,
            selectedVariants=item.selected_variants or {},
            basePrice=item.base_price,
            finalPrice=item.final_price,
            estimatedDuration=item.estimated_duration,
            addonTotal=get_addon_total(item.selected_variants),
            notes=item.notes,
            referenceImages=item.reference_images or [],
            createdAt=item.created_at,
        )

    def cart_details(self, cart_id: int) -> CartResponse:
        cart = self.db.query(Cart).filter(Cart.id == cart_id).first()
        if not cart:
            raise HTTPException(status_code=404, detail="Cart not found")
        self.db.refresh(cart)
        items = [self._item_response(i) for i in cart.items]
        return CartResponse(
            id=cart.id,
            userId=cart.user_id,
            sessionId=cart.session_id,
            status=cart.status,
            expiresAt=cart.expires_at,
            items=items,
            totalPrice=sum(i.finalPrice for i in items),
            totalDuration=sum(i.estimatedDuration for i in items),
            addonTotal=sum(i.addonTotal for i in items),
        )

    def current_cart(self, user_id: Optional[int], session_id: Optional[str]) -> CartResponse:
        cart = self.find_active_cart(user_id, session_id)
        if not cart:
            return CartResponse(
                userId=user_id,
                sessionId=session_id,
                status="active",
                items=[],
                totalPrice=0,
                totalDuration=0,
                addonTotal=0,
            )
        return self.cart_details(cart.id)

    def _guest_user(self, data: CheckoutRequest) -> User:
        email = data.customerEmail or f"{data.customerPhone}@guest.com"
        user = self.db.query(User).filter(User.email == email).first()
        if user:
            return user
        user = User(
            email=email,
            hashed_password="",  # Guests cannot log in until a password is set
            name=data.customerName,
            phone=data.customerPhone,
            role=ROLE_MEMBER,
        )
        self.db.add(user)
        self.db.flush()
        self.db.add(Member(user_id=user.id))
        return user

    def checkout(self, data: CheckoutRequest, user_id: Optional[int], session_id: Optional[str]) -> dict:
        cart = self.find_active_cart(user_id, session_id)
        if not cart or not cart.items:
            raise HTTPException(status_code=400, detail="Cart is empty")

        if not self.db.query(Branch).filter(Branch.id == data.branchId).first():
            raise HTTPException(status_code=404, detail="Branch not found")
        if data.artistId and not self.db.query(User).filter(User.id == data.artistId).first():
            raise HTTPException(status_code=404, detail="Artist not found")

        try:
            day = parse_date(data.preferredDate)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        hours, minutes = (int(part) for part in data.preferredTimeSlot.split(":"))

        items = cart.items
        total_price = sum(i.final_price for i in items)
        total_duration = sum(i.estimated_duration for i in items)
        start_at = datetime(day.year, day.month, day.day, hours, minutes)
        end_at = start_at + timedelta(minutes=total_duration)

        snapshot = {
            "items": [
                {
                    "serviceId": i.service_id,
                    "serviceName": i.service.name if i.service else None,
                    "selectedVariants": i.selected_variants,
                    "basePrice": i.base_price,
                    "finalPrice": i.final_price,
                    "estimatedDuration": i.estimated_duration,
                    "notes": i.notes,
                    "referenceImages": i.reference_images or [],
                }
                for i in items
            ],
            "totalPrice": total_price,
            "totalDuration": total_duration,
        }

        customer_id = user_id or self._guest_user(data).id

        appointment = Appointment(
            branch_id=data.branchId,
            artist_id=data.artistId,
            user_id=customer_id,
            service_id=items[0].service_id,
            start_at=start_at,
            end_at=end_at,
            status="PENDING",
            notes=sanitize_text(data.specialRequests),
            cart_id=cart.id,
            cart_snapshot=snapshot,
        )
        self.db.add(appointment)
        self.db.flush()

        order = Order(
            member_id=customer_id,
            branch_id=data.branchId,
            appointment_id=appointment.id,
            total_amount=total_price,
            final_amount=total_price,
            payment_type="ONE_TIME",
            status="PENDING_PAYMENT",
            cart_snapshot=snapshot,
        )
        self.db.add(order)
        cart.status = "checked_out"
        self.db.commit()

        logger.info(f"✅ Cart {cart.id} checked out: appointment {appointment.id}, order {order.id}")
        return {"appointmentId": appointment.id, "orderId": order.id}

    def cleanup_expired_carts(self) -> int:
        updated = (
            self.db.query(Cart)
            .filter(Cart.status == "active", Cart.expires_at < datetime.utcnow())
            .update({Cart.status: "expired"}, synchronize_session=False)
        )
        self.db.commit()
        if updated:
            logger.info(f"🧹 Expired {updated} cart(s)")
        return updated
