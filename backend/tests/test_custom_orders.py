"""
Tests for custom order negotiation.

Covers the seller's proposal, buyer acceptance and its policies, buyer
substitution, external status writes and the end-to-end checkout.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.core.exceptions import Expired, NotFound, PermissionDenied, StateConflict, ValidationFailed
from apps.custom_orders.models import CustomOrder
from apps.custom_orders.services import custom_order_service, custom_order_link, is_expired
from apps.messaging.models import Message
from apps.notifications.models import Notification
from apps.orders.models import FulfillmentOrder
from tests.conftest import BUYER_ID, SELLER_ID


pytestmark = pytest.mark.django_db


def create_order(conversation_id, items, shipping_cost=Decimal('200'), payment_method='COD', **kwargs):
    return custom_order_service.create_custom_order(
        seller_id=SELLER_ID,
        seller_name='Craft Shop',
        buyer_id=BUYER_ID,
        buyer_name='Nimal',
        conversation_id=conversation_id,
        items=items,
        shipping_cost=shipping_cost,
        payment_method=payment_method,
        **kwargs
    )


def expire(order_id):
    CustomOrder.objects.filter(id=order_id).update(valid_until=timezone.now() - timedelta(minutes=1))


class TestCreateCustomOrder:

    def test_pending_with_totals_and_validity(self, conversation_id, bag_items, settings):
        before = timezone.now()
        order_id = create_order(conversation_id, bag_items)
        order = custom_order_service.get_custom_order(order_id)

        assert order.status == CustomOrder.STATUS_PENDING
        assert order.total_amount == Decimal('1500.00')
        assert order.shipping_cost == Decimal('200.00')
        assert order.grand_total == Decimal('1700.00')
        assert before + timedelta(days=settings.CUSTOM_ORDER_VALIDITY_DAYS) <= order.valid_until
        assert order.valid_until <= timezone.now() + timedelta(days=settings.CUSTOM_ORDER_VALIDITY_DAYS)
        assert [item.name for item in order.items.all()] == ['Handmade Bag']

    def test_totals_for_several_items(self, conversation_id):
        items = [
            {'name': 'Mug', 'quantity': 2, 'unit_price': 100},
            {'name': 'Coaster', 'quantity': 1, 'unit_price': 50},
        ]
        order = custom_order_service.get_custom_order(create_order(conversation_id, items, shipping_cost=30))

        assert order.total_amount == Decimal('250.00')
        assert order.grand_total == Decimal('280.00')
        assert [item.position for item in order.items.all()] == [0, 1]

    def test_digital_order_is_normalized(self, conversation_id):
        items = [{'name': 'E-book', 'quantity': 3, 'unit_price': 400}]
        order_id = create_order(
            conversation_id, items, shipping_cost=250, payment_method='BANK_TRANSFER', item_type='digital'
        )
        order = custom_order_service.get_custom_order(order_id)

        assert order.shipping_cost == Decimal('0.00')
        assert order.items.get().quantity == 1
        assert order.grand_total == Decimal('400.00')

    def test_digital_order_rejects_cod(self, conversation_id):
        items = [{'name': 'E-book', 'quantity': 1, 'unit_price': 400, 'item_type': 'digital'}]
        with pytest.raises(ValidationFailed) as exc:
            create_order(conversation_id, items, payment_method='COD')
        assert 'payment_method' in exc.value.details
        assert CustomOrder.objects.count() == 0

    def test_notes_trimmed_and_blank_dropped(self, conversation_id, bag_items):
        first = custom_order_service.get_custom_order(create_order(conversation_id, bag_items, notes='  gift wrap  '))
        second = custom_order_service.get_custom_order(create_order(conversation_id, bag_items, notes='   '))
        assert first.notes == 'gift wrap'
        assert second.notes is None

    def test_seller_cannot_target_themselves(self, conversation_id, bag_items):
        with pytest.raises(ValidationFailed):
            custom_order_service.create_custom_order(
                SELLER_ID, 'Craft Shop', SELLER_ID, 'Craft Shop', conversation_id, bag_items, 0, 'COD'
            )

    def test_parties_must_be_in_conversation(self, conversation_id, bag_items):
        with pytest.raises(ValidationFailed) as exc:
            custom_order_service.create_custom_order(
                SELLER_ID, 'Craft Shop', 'stranger', 'Stranger', conversation_id, bag_items, 0, 'COD'
            )
        assert exc.value.code == 'NOT_A_PARTICIPANT'

    @pytest.mark.parametrize('buyer_id', ['buyer:1', 'buyer 1', ''])
    def test_malformed_buyer_id_rejected(self, conversation_id, bag_items, buyer_id):
        with pytest.raises(ValidationFailed) as exc:
            custom_order_service.create_custom_order(
                SELLER_ID, 'Craft Shop', buyer_id, 'Nimal', conversation_id, bag_items, 0, 'COD'
            )
        assert exc.value.code == 'INVALID_USER_ID'
        assert CustomOrder.objects.count() == 0

    def test_request_notification_defaults_to_seller(self, conversation_id, bag_items):
        order_id = create_order(conversation_id, bag_items)

        notification = Notification.objects.get()
        assert notification.user_id == SELLER_ID
        assert notification.type == Notification.TYPE_CUSTOM_ORDER_REQUEST
        assert 'Nimal' in notification.message
        assert 'Handmade Bag' in notification.message
        assert notification.data['customOrderId'] == order_id

    def test_request_notification_routed_to_buyer(self, conversation_id, bag_items):
        create_order(conversation_id, bag_items, notify_recipient='buyer')

        notification = Notification.objects.get()
        assert notification.user_id == BUYER_ID
        assert 'Craft Shop' in notification.message

    def test_announce_posts_link_in_conversation(self, conversation_id, bag_items):
        order_id = create_order(conversation_id, bag_items, announce=True)

        message = Message.objects.get(conversation_id=conversation_id)
        assert message.sender_id == SELLER_ID
        assert custom_order_link(order_id) in message.text
        assert 'LKR 1,700.00' in message.text

    def test_notification_failure_does_not_fail_creation(self, conversation_id, bag_items, monkeypatch):
        from apps.notifications import tasks

        def broken_delay(*args, **kwargs):
            raise ConnectionError('broker down')

        monkeypatch.setattr(tasks.send_custom_order_notification, 'delay', broken_delay)
        order_id = create_order(conversation_id, bag_items)

        assert custom_order_service.get_custom_order(order_id) is not None
        assert Notification.objects.count() == 0


class TestGetCustomOrder:

    def test_missing_returns_none(self):
        assert custom_order_service.get_custom_order('00000000-0000-0000-0000-000000000000') is None

    def test_malformed_returns_none(self):
        assert custom_order_service.get_custom_order('nope') is None


class TestExpiry:

    def test_is_expired_boundaries(self, conversation_id, bag_items):
        order = custom_order_service.get_custom_order(create_order(conversation_id, bag_items))

        assert is_expired(order, order.valid_until - timedelta(seconds=1)) is False
        assert is_expired(order, order.valid_until) is False
        assert is_expired(order, order.valid_until + timedelta(seconds=1)) is True

    def test_expired_order_cannot_be_accepted(self, conversation_id, bag_items):
        order_id = create_order(conversation_id, bag_items)
        expire(order_id)

        with pytest.raises(Expired) as exc:
            custom_order_service.accept_custom_order(order_id, '12 Lake Rd', '0771234567')
        assert exc.value.code == 'CUSTOM_ORDER_EXPIRED'
        assert custom_order_service.get_custom_order(order_id).status == CustomOrder.STATUS_PENDING


class TestAcceptCustomOrder:

    def test_accept_records_delivery_details(self, conversation_id, bag_items):
        order_id = create_order(conversation_id, bag_items)
        order = custom_order_service.accept_custom_order(order_id, ' 12 Lake Rd ', '077 123 4567')

        assert order.status == CustomOrder.STATUS_ACCEPTED
        assert order.buyer_address == '12 Lake Rd'
        assert order.buyer_phone == '077 123 4567'

        accepted = Notification.objects.get(type=Notification.TYPE_CUSTOM_ORDER_ACCEPTED)
        assert accepted.user_id == SELLER_ID

    def test_second_acceptance_rejected(self, conversation_id, bag_items):
        order_id = create_order(conversation_id, bag_items)
        custom_order_service.accept_custom_order(order_id, '12 Lake Rd', '0771234567')

        with pytest.raises(StateConflict) as exc:
            custom_order_service.accept_custom_order(order_id, 'Elsewhere', '0770000000')
        assert exc.value.code == 'CUSTOM_ORDER_NOT_PENDING'
        assert custom_order_service.get_custom_order(order_id).buyer_address == '12 Lake Rd'

    @pytest.mark.parametrize('address,phone', [
        ('', '0771234567'),
        ('12 Lake Rd', ''),
        ('12 Lake Rd', 'call me'),
        ('12 Lake Rd', '077#123'),
    ])
    def test_invalid_delivery_details(self, conversation_id, bag_items, address, phone):
        order_id = create_order(conversation_id, bag_items)
        with pytest.raises(ValidationFailed):
            custom_order_service.accept_custom_order(order_id, address, phone)

    @pytest.mark.parametrize('phone', ['0771234567', '+94 77 123 4567', '(077) 123-4567'])
    def test_valid_phone_formats(self, conversation_id, bag_items, phone):
        order_id = create_order(conversation_id, bag_items)
        assert custom_order_service.accept_custom_order(order_id, '12 Lake Rd', phone).buyer_phone == phone

    def test_unknown_order(self):
        with pytest.raises(NotFound):
            custom_order_service.accept_custom_order('00000000-0000-0000-0000-000000000000', 'a', '1')


class TestUpdateBuyer:

    def test_reopens_accepted_order(self, conversation_id, bag_items):
        order_id = create_order(conversation_id, bag_items)
        custom_order_service.accept_custom_order(order_id, '12 Lake Rd', '0771234567')

        order = custom_order_service.update_custom_order_buyer(order_id, 'buyer-2', 'Kamal')

        assert order.status == CustomOrder.STATUS_PENDING
        assert order.buyer_id == 'buyer-2'
        assert order.buyer_name == 'Kamal'

    def test_seller_cannot_become_buyer(self, conversation_id, bag_items):
        order_id = create_order(conversation_id, bag_items)
        with pytest.raises(ValidationFailed):
            custom_order_service.update_custom_order_buyer(order_id, SELLER_ID, 'Craft Shop')

    def test_malformed_buyer_id_rejected(self, conversation_id, bag_items):
        order_id = create_order(conversation_id, bag_items)
        with pytest.raises(ValidationFailed) as exc:
            custom_order_service.update_custom_order_buyer(order_id, 'buyer:2', 'Kamal')
        assert exc.value.code == 'INVALID_USER_ID'
        assert custom_order_service.get_custom_order(order_id).buyer_id == BUYER_ID

    def test_paid_order_cannot_be_reopened(self, conversation_id, bag_items):
        order_id = create_order(conversation_id, bag_items)
        custom_order_service.accept_custom_order(order_id, '12 Lake Rd', '0771234567')
        custom_order_service.mark_custom_order_paid(order_id)

        with pytest.raises(StateConflict):
            custom_order_service.update_custom_order_buyer(order_id, 'buyer-2', 'Kamal')


class TestStatusUpdates:

    def _accepted(self, conversation_id, items, payment_method='COD'):
        order_id = create_order(conversation_id, items, payment_method=payment_method)
        custom_order_service.accept_custom_order(order_id, '12 Lake Rd', '0771234567')
        return order_id

    def test_full_lifecycle(self, conversation_id, bag_items):
        order_id = self._accepted(conversation_id, bag_items, 'BANK_TRANSFER')

        custom_order_service.mark_custom_order_paid(order_id)
        shipped = custom_order_service.update_custom_order_status(order_id, 'SHIPPED', tracking_number='TRK-1')
        delivered = custom_order_service.update_custom_order_status(order_id, 'DELIVERED')

        assert shipped.tracking_number == 'TRK-1'
        assert delivered.status == CustomOrder.STATUS_DELIVERED

    def test_cod_may_ship_before_payment(self, conversation_id, bag_items):
        order_id = self._accepted(conversation_id, bag_items, 'COD')
        assert custom_order_service.update_custom_order_status(order_id, 'SHIPPED').status == 'SHIPPED'

    def test_bank_transfer_must_be_paid_before_shipping(self, conversation_id, bag_items):
        order_id = self._accepted(conversation_id, bag_items, 'BANK_TRANSFER')
        with pytest.raises(StateConflict):
            custom_order_service.update_custom_order_status(order_id, 'SHIPPED')

    def test_pending_cannot_be_paid(self, conversation_id, bag_items):
        order_id = create_order(conversation_id, bag_items)
        with pytest.raises(StateConflict) as exc:
            custom_order_service.mark_custom_order_paid(order_id)
        assert exc.value.code == 'INVALID_TRANSITION'

    def test_terminal_states_are_final(self, conversation_id, bag_items):
        order_id = create_order(conversation_id, bag_items)
        custom_order_service.update_custom_order_status(order_id, 'CANCELLED')
        with pytest.raises(StateConflict):
            custom_order_service.update_custom_order_status(order_id, 'PAID')

    def test_accept_is_not_an_external_write(self, conversation_id, bag_items):
        order_id = create_order(conversation_id, bag_items)
        with pytest.raises(ValidationFailed):
            custom_order_service.update_custom_order_status(order_id, 'ACCEPTED')

    def test_unknown_status_and_fields(self, conversation_id, bag_items):
        order_id = create_order(conversation_id, bag_items)
        with pytest.raises(ValidationFailed):
            custom_order_service.update_custom_order_status(order_id, 'LOST')
        with pytest.raises(ValidationFailed):
            custom_order_service.update_custom_order_status(order_id, 'CANCELLED', grand_total=0)


class TestListCustomOrders:

    def test_by_role_newest_first(self, conversation_id, bag_items):
        first = create_order(conversation_id, bag_items)
        second = create_order(conversation_id, bag_items)

        as_seller = [str(o.id) for o in custom_order_service.list_custom_orders(SELLER_ID, 'seller')]
        as_buyer = [str(o.id) for o in custom_order_service.list_custom_orders(BUYER_ID, 'buyer')]

        assert as_seller == [second, first]
        assert as_buyer == [second, first]
        assert custom_order_service.list_custom_orders(SELLER_ID, 'buyer') == []

    def test_invalid_role(self):
        with pytest.raises(ValidationFailed):
            custom_order_service.list_custom_orders(SELLER_ID, 'admin')


class TestCheckout:

    def test_negotiation_scenario(self, conversation_id, bag_items):
        """Seller proposes a bag, buyer checks out, one fulfillment order appears."""
        order_id = create_order(conversation_id, bag_items, shipping_cost=Decimal('200'), payment_method='COD')
        order = custom_order_service.get_custom_order(order_id)
        assert (order.status, order.total_amount, order.grand_total) == ('PENDING', Decimal('1500'), Decimal('1700'))

        result = custom_order_service.checkout_custom_order(
            order_id, BUYER_ID, 'Nimal', '12 Lake Rd', '0771234567'
        )

        assert result.order.status == CustomOrder.STATUS_ACCEPTED
        assert result.materialization.complete
        fulfillment = FulfillmentOrder.objects.get()
        assert fulfillment.shipping == Decimal('200.00')
        assert fulfillment.total == Decimal('1700.00')
        assert fulfillment.payment_method == FulfillmentOrder.PAYMENT_COD
        assert fulfillment.buyer_address == '12 Lake Rd'

    def test_other_account_takes_over(self, conversation_id, bag_items):
        order_id = create_order(conversation_id, bag_items)

        result = custom_order_service.checkout_custom_order(
            order_id, 'buyer-2', 'Kamal', '12 Lake Rd', '0771234567'
        )

        assert result.order.buyer_id == 'buyer-2'
        assert FulfillmentOrder.objects.get().buyer_id == 'buyer-2'

    def test_seller_cannot_check_out(self, conversation_id, bag_items):
        order_id = create_order(conversation_id, bag_items)
        with pytest.raises(PermissionDenied):
            custom_order_service.checkout_custom_order(order_id, SELLER_ID, 'Craft Shop', '12 Lake Rd', '0771234567')

    def test_expired_checkout_leaves_buyer_alone(self, conversation_id, bag_items):
        order_id = create_order(conversation_id, bag_items)
        expire(order_id)

        with pytest.raises(Expired):
            custom_order_service.checkout_custom_order(order_id, 'buyer-2', 'Kamal', '12 Lake Rd', '0771234567')
        assert custom_order_service.get_custom_order(order_id).buyer_id == BUYER_ID
        assert FulfillmentOrder.objects.count() == 0
