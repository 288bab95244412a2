"""
Custom order negotiation.

A seller proposes priced items inside a conversation; the buyer accepts by
supplying delivery details, which hands the order to the materializer.
Later statuses (PAID, SHIPPED, DELIVERED, CANCELLED) are written by the
fulfillment side through ``update_custom_order_status``.
"""

import logging
import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, List, Optional, Sequence

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from apps.conversations.services import conversation_registry
from apps.core.exceptions import (
    AppError,
    Expired,
    NotFound,
    PermissionDenied,
    StateConflict,
    ValidationFailed,
)
from apps.core.utils import check_user_id
from apps.notifications.models import Notification
from apps.notifications.services import dispatch_custom_order_notification
from apps.orders.services import MaterializationResult, order_materializer
from apps.websocket.services import websocket_service
from .models import CustomOrder, CustomOrderItem
from .validation import normalize_proposal

logger = logging.getLogger(__name__)


PHONE_PATTERN = re.compile(r'^[0-9+\-\s()]+$')

NOTIFY_SELLER = 'seller'
NOTIFY_BUYER = 'buyer'

# External status writes: current status -> statuses it may move to
ALLOWED_TRANSITIONS = {
    CustomOrder.STATUS_PENDING: {CustomOrder.STATUS_ACCEPTED, CustomOrder.STATUS_CANCELLED},
    CustomOrder.STATUS_ACCEPTED: {CustomOrder.STATUS_PAID, CustomOrder.STATUS_SHIPPED, CustomOrder.STATUS_CANCELLED},
    CustomOrder.STATUS_PAID: {CustomOrder.STATUS_SHIPPED, CustomOrder.STATUS_CANCELLED},
    CustomOrder.STATUS_SHIPPED: {CustomOrder.STATUS_DELIVERED, CustomOrder.STATUS_CANCELLED},
    CustomOrder.STATUS_DELIVERED: set(),
    CustomOrder.STATUS_CANCELLED: set(),
}

STATUS_UPDATE_FIELDS = ('tracking_number', 'buyer_address', 'buyer_phone')


def is_expired(order: CustomOrder, now=None) -> bool:
    """True once the current time is past the order's ``valid_until``."""
    return order.is_expired(now)


def custom_order_link(order_id) -> str:
    return f'{settings.FRONTEND_BASE_URL.rstrip("/")}/custom-order/{order_id}'


@dataclass
class CheckoutResult:
    order: CustomOrder
    materialization: MaterializationResult


class CustomOrderService:

    def _queryset(self):
        return CustomOrder.objects.prefetch_related('items')

    def get_custom_order(self, order_id) -> Optional[CustomOrder]:
        """
        Returns:
            The order, or None when it does not exist or the ID is malformed
        """
        try:
            return self._queryset().get(id=order_id)
        except (CustomOrder.DoesNotExist, ValueError, DjangoValidationError):
            return None

    def _require(self, order_id) -> CustomOrder:
        order = self.get_custom_order(order_id)
        if order is None:
            raise NotFound('Custom order not found', code='CUSTOM_ORDER_NOT_FOUND')
        return order

    def create_custom_order(
        self,
        seller_id: str,
        seller_name: str,
        buyer_id: str,
        buyer_name: str,
        conversation_id,
        items: Sequence,
        shipping_cost,
        payment_method: str,
        item_type: Optional[str] = None,
        notes: Optional[str] = None,
        notify_recipient: Optional[str] = None,
        announce: bool = False
    ) -> str:
        """
        Record a seller's proposal as a PENDING custom order valid for
        ``CUSTOM_ORDER_VALIDITY_DAYS`` days.

        Args:
            notify_recipient: 'seller' or 'buyer'; who receives the
                custom_order_request notification. Defaults to the
                CUSTOM_ORDER_REQUEST_RECIPIENT setting.
            announce: Also post a chat message with the order link in the
                originating conversation

        Returns:
            The new order's ID

        Raises:
            ValidationFailed: invalid proposal or parties
            NotFound: unknown conversation
        """
        seller_id = check_user_id(seller_id, 'seller_id')
        buyer_id = check_user_id(buyer_id, 'buyer_id')
        if seller_id == buyer_id:
            raise ValidationFailed('Sellers cannot send a custom order to themselves', code='SELF_CUSTOM_ORDER')

        conversation = conversation_registry.get_conversation(conversation_id)
        if not conversation.has_participant(seller_id) or not conversation.has_participant(buyer_id):
            raise ValidationFailed(
                'Seller and buyer must both take part in the conversation',
                code='NOT_A_PARTICIPANT',
            )

        proposal = normalize_proposal(items, shipping_cost, payment_method, item_type)
        notes = (notes or '').strip() or None

        with transaction.atomic():
            order = CustomOrder.objects.create(
                seller_id=seller_id,
                seller_name=seller_name or '',
                buyer_id=buyer_id,
                buyer_name=buyer_name or '',
                conversation=conversation,
                item_type=proposal.item_type,
                total_amount=proposal.total_amount,
                shipping_cost=proposal.shipping_cost,
                grand_total=proposal.grand_total,
                payment_method=proposal.payment_method,
                status=CustomOrder.STATUS_PENDING,
                notes=notes,
                valid_until=timezone.now() + timedelta(days=settings.CUSTOM_ORDER_VALIDITY_DAYS),
            )
            CustomOrderItem.objects.bulk_create([
                CustomOrderItem(
                    custom_order=order,
                    position=position,
                    item_id=item.item_id,
                    name=item.name,
                    description=item.description,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    image_url=item.image_url,
                    item_type=item.item_type,
                )
                for position, item in enumerate(proposal.items)
            ])

        logger.info(f'[custom_orders] Created custom order {order.id} ({proposal.grand_total}) in {conversation.id}')

        items_summary = ', '.join(item.name for item in proposal.items)
        recipient = notify_recipient or settings.CUSTOM_ORDER_REQUEST_RECIPIENT
        if recipient == NOTIFY_BUYER:
            dispatch_custom_order_notification(
                buyer_id, Notification.TYPE_CUSTOM_ORDER_REQUEST, seller_name, items_summary, order.id
            )
        else:
            dispatch_custom_order_notification(
                seller_id, Notification.TYPE_CUSTOM_ORDER_REQUEST, buyer_name, items_summary, order.id
            )

        if announce:
            self._announce(order, proposal.grand_total, len(proposal.items))

        self._publish(order.id)
        return str(order.id)

    def _announce(self, order: CustomOrder, grand_total, item_count: int) -> None:
        from apps.messaging.services import message_log

        plural = 's' if item_count > 1 else ''
        text = (
            f"Custom Order Created!\n\n"
            f"I've prepared a special order just for you with {item_count} item{plural} "
            f"totaling LKR {grand_total:,.2f}.\n\n"
            f"Click the link below to review and checkout:\n{custom_order_link(order.id)}"
        )
        try:
            message_log.send(order.conversation_id, order.seller_id, order.seller_name, text, order.buyer_id)
        except AppError as e:
            logger.error(f'[custom_orders] Could not announce custom order {order.id}: {e.message}')

    def accept_custom_order(self, order_id, buyer_address: str, buyer_phone: str) -> CustomOrder:
        """
        Move a PENDING, unexpired order to ACCEPTED with delivery details.

        The status change is conditional on the order still being PENDING,
        so of two racing acceptances only the first succeeds.

        Raises:
            ValidationFailed: blank address or malformed phone
            NotFound: unknown order
            StateConflict: the order is no longer PENDING
            Expired: the order is past ``valid_until``
        """
        buyer_address = (buyer_address or '').strip()
        buyer_phone = (buyer_phone or '').strip()
        errors = {}
        if not buyer_address:
            errors['buyer_address'] = 'Address is required'
        if not buyer_phone:
            errors['buyer_phone'] = 'Phone number is required'
        elif not PHONE_PATTERN.match(buyer_phone):
            errors['buyer_phone'] = 'Please enter a valid phone number'
        if errors:
            raise ValidationFailed('Invalid delivery details', details=errors)

        order = self._require(order_id)
        self._check_acceptable(order)

        updated = CustomOrder.objects.filter(
            id=order.id,
            status=CustomOrder.STATUS_PENDING,
        ).update(
            status=CustomOrder.STATUS_ACCEPTED,
            buyer_address=buyer_address,
            buyer_phone=buyer_phone,
            updated_at=timezone.now(),
        )
        if not updated:
            raise StateConflict('Custom order was accepted by someone else', code='CUSTOM_ORDER_NOT_PENDING')

        order = self._require(order.id)
        logger.info(f'[custom_orders] Custom order {order.id} accepted by {order.buyer_id}')

        dispatch_custom_order_notification(
            order.seller_id,
            Notification.TYPE_CUSTOM_ORDER_ACCEPTED,
            order.buyer_name,
            order.items_summary,
            order.id,
        )
        self._publish(order.id)
        return order

    def _check_acceptable(self, order: CustomOrder) -> None:
        if order.status != CustomOrder.STATUS_PENDING:
            raise StateConflict(
                f'Custom order is {order.status}, not PENDING',
                code='CUSTOM_ORDER_NOT_PENDING',
                details={'status': order.status},
            )
        if order.is_expired():
            raise Expired(
                'Custom order has expired',
                code='CUSTOM_ORDER_EXPIRED',
                details={'valid_until': order.valid_until.isoformat()},
            )

    def update_custom_order_buyer(self, order_id, new_buyer_id: str, new_buyer_name: str) -> CustomOrder:
        """
        Hand the proposal to a different buyer account and re-open it.

        Status goes back to PENDING even if it was ACCEPTED; orders that are
        paid, shipped, delivered or cancelled cannot be re-opened.

        Raises:
            NotFound, ValidationFailed, StateConflict
        """
        order = self._require(order_id)
        new_buyer_id = check_user_id(new_buyer_id, 'buyer_id')
        if new_buyer_id == order.seller_id:
            raise ValidationFailed('The seller cannot become the buyer', code='SELF_CUSTOM_ORDER')
        if order.status not in (CustomOrder.STATUS_PENDING, CustomOrder.STATUS_ACCEPTED):
            raise StateConflict(
                f'Custom order is {order.status} and cannot be re-opened',
                code='CUSTOM_ORDER_NOT_REOPENABLE',
                details={'status': order.status},
            )

        previous_buyer = order.buyer_id
        CustomOrder.objects.filter(id=order.id).update(
            status=CustomOrder.STATUS_PENDING,
            buyer_id=new_buyer_id,
            buyer_name=new_buyer_name or '',
            updated_at=timezone.now(),
        )
        logger.info(f'[custom_orders] Custom order {order.id} re-opened for buyer {new_buyer_id} (was {previous_buyer})')

        self._publish(order.id, extra_user_ids=[previous_buyer])
        return self._require(order.id)

    def update_custom_order_status(self, order_id, status: str, **fields) -> CustomOrder:
        """
        Apply an externally driven status change.

        Args:
            status: Target status
            **fields: Optional tracking_number, buyer_address, buyer_phone

        Raises:
            NotFound, ValidationFailed, StateConflict
        """
        if status not in ALLOWED_TRANSITIONS:
            raise ValidationFailed(f'Unknown status: {status}', code='INVALID_STATUS')

        unknown = set(fields) - set(STATUS_UPDATE_FIELDS)
        if unknown:
            raise ValidationFailed(f'Cannot update fields: {", ".join(sorted(unknown))}')

        order = self._require(order_id)
        if status == CustomOrder.STATUS_ACCEPTED:
            raise ValidationFailed('Use accept_custom_order to accept an order', code='INVALID_STATUS')

        allowed = ALLOWED_TRANSITIONS[order.status]
        if status not in allowed:
            raise StateConflict(
                f'Cannot move custom order from {order.status} to {status}',
                code='INVALID_TRANSITION',
                details={'from': order.status, 'to': status},
            )
        if status == CustomOrder.STATUS_SHIPPED and order.status == CustomOrder.STATUS_ACCEPTED \
                and order.payment_method != CustomOrder.PAYMENT_COD:
            raise StateConflict(
                'Bank transfer orders must be paid before shipping',
                code='INVALID_TRANSITION',
                details={'from': order.status, 'to': status},
            )

        updated = CustomOrder.objects.filter(id=order.id, status=order.status).update(
            status=status,
            updated_at=timezone.now(),
            **fields
        )
        if not updated:
            raise StateConflict('Custom order changed concurrently, retry', code='CONCURRENT_UPDATE', retryable=True)

        logger.info(f'[custom_orders] Custom order {order.id}: {order.status} -> {status}')
        self._publish(order.id)
        return self._require(order.id)

    def mark_custom_order_paid(self, order_id) -> CustomOrder:
        return self.update_custom_order_status(order_id, CustomOrder.STATUS_PAID)

    def list_custom_orders(self, user_id: str, role: str) -> List[CustomOrder]:
        """
        Args:
            role: 'buyer' or 'seller'
        """
        if role not in (NOTIFY_BUYER, NOTIFY_SELLER):
            raise ValidationFailed("Role must be 'buyer' or 'seller'")
        lookup = {f'{role}_id': str(user_id)}
        return list(self._queryset().filter(**lookup).order_by('-created_at'))

    def checkout_custom_order(
        self,
        order_id,
        user_id: str,
        user_name: str,
        buyer_address: str,
        buyer_phone: str
    ) -> CheckoutResult:
        """
        Buyer-facing acceptance: take over the proposal if it was addressed
        to another account, accept it, then create the fulfillment orders.

        Raises:
            PermissionDenied: the seller tried to check out their own order
            plus everything ``accept_custom_order`` raises
        """
        user_id = str(user_id)
        order = self._require(order_id)
        if user_id == order.seller_id:
            raise PermissionDenied('Sellers cannot accept their own custom order')

        self._check_acceptable(order)
        if user_id != order.buyer_id:
            self.update_custom_order_buyer(order.id, user_id, user_name)

        order = self.accept_custom_order(order.id, buyer_address, buyer_phone)
        materialization = order_materializer.materialize(order)
        return CheckoutResult(order=order, materialization=materialization)

    def materialize(self, order_id, user_id: str) -> MaterializationResult:
        """Re-run the fulfillment handoff; safe to repeat."""
        order = self._require(order_id)
        if str(user_id) not in (order.buyer_id, order.seller_id):
            raise NotFound('Custom order not found', code='CUSTOM_ORDER_NOT_FOUND')
        return order_materializer.materialize(order)

    def _publish(self, order_id, extra_user_ids: Optional[List[str]] = None) -> None:
        from .serializers import CustomOrderSerializer

        order = self._require(order_id)
        user_ids = [order.seller_id, order.buyer_id] + list(extra_user_ids or [])
        websocket_service.emit_custom_order_update(user_ids, CustomOrderSerializer(order).data)


# Create singleton instance
custom_order_service = CustomOrderService()
