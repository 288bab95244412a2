"""
Tests for in-app notifications.
"""

import pytest

from apps.core.exceptions import NotFound
from apps.notifications import services
from apps.notifications.models import Notification
from apps.notifications.tasks import send_custom_order_notification


pytestmark = pytest.mark.django_db


class TestCustomOrderNotifications:

    @pytest.mark.parametrize('kind,title,fragment', [
        (Notification.TYPE_CUSTOM_ORDER_REQUEST, 'Custom Order Request', 'has requested a custom order'),
        (Notification.TYPE_CUSTOM_ORDER_ACCEPTED, 'Custom Order Accepted', 'accepted your custom order'),
        (Notification.TYPE_CUSTOM_ORDER_DECLINED, 'Custom Order Declined', 'was declined'),
    ])
    def test_title_and_message_per_kind(self, kind, title, fragment):
        notification = services.create_custom_order_notification('u1', kind, 'Nimal', 'Bag, Mug', 'order-1')

        assert notification.title == title
        assert fragment in notification.message
        assert 'Bag, Mug' in notification.message
        assert notification.is_read is False
        assert notification.data == {'customerName': 'Nimal', 'details': 'Bag, Mug', 'customOrderId': 'order-1'}

    def test_rejects_other_kinds(self):
        with pytest.raises(ValueError):
            services.create_custom_order_notification('u1', Notification.TYPE_NEW_MESSAGE, 'Nimal', 'Bag')

    def test_dispatch_runs_task(self):
        services.dispatch_custom_order_notification('u1', Notification.TYPE_CUSTOM_ORDER_REQUEST, 'Nimal', 'Bag')
        assert Notification.objects.filter(user_id='u1').count() == 1

    def test_task_swallows_errors(self):
        assert send_custom_order_notification('u1', 'not-a-kind', 'Nimal', 'Bag') is None
        assert Notification.objects.count() == 0


class TestReadState:

    def _notify(self, user_id, count):
        return [
            services.create_custom_order_notification(user_id, Notification.TYPE_CUSTOM_ORDER_REQUEST, 'N', f'item {i}')
            for i in range(count)
        ]

    def test_unread_count_and_mark_one(self):
        first, _second = self._notify('u1', 2)
        self._notify('u2', 1)

        assert services.get_unread_notification_count('u1') == 2
        services.mark_notification_as_read(first.id, 'u1')
        assert services.get_unread_notification_count('u1') == 1
        assert services.get_unread_notification_count('u2') == 1

    def test_cannot_mark_someone_elses(self):
        (notification,) = self._notify('u1', 1)
        with pytest.raises(NotFound):
            services.mark_notification_as_read(notification.id, 'u2')

    def test_mark_all(self):
        self._notify('u1', 3)
        assert services.mark_all_notifications_as_read('u1') == 3
        assert services.mark_all_notifications_as_read('u1') == 0
        assert services.get_unread_notification_count('u1') == 0

    def test_list_newest_first_with_limit(self):
        created = self._notify('u1', 4)
        listed = services.list_notifications('u1', limit=3)
        assert [n.id for n in listed] == [n.id for n in reversed(created)][:3]
