"""
Tests for the message log and unread tracking.

**Pagination round-trip**: walking back from the newest page with cursors
visits every message exactly once, in order.
**Unread zeroing**: after mark_messages_as_read the reader's counter is 0
and no message from the other participant is left unread.
"""

import uuid
from unittest import mock

import pytest
from django.db import DatabaseError
from hypothesis import given, settings as hypothesis_settings, strategies as st, HealthCheck

from apps.conversations.models import ConversationParticipant
from apps.conversations.services import conversation_registry
from apps.core.exceptions import NotFound, ValidationFailed
from apps.messaging.models import Message
from apps.messaging.services import message_log, clean_message_text
from tests.conftest import BUYER_ID, SELLER_ID


pytestmark = pytest.mark.django_db


def unread_for(conversation_id, user_id):
    return ConversationParticipant.objects.get(conversation_id=conversation_id, user_id=user_id).unread_count


class TestSend:

    def test_send_updates_summary_and_recipient_counter(self, conversation_id):
        message = message_log.send(conversation_id, BUYER_ID, 'Nimal', '  Is this available?  ', SELLER_ID)

        assert message.text == 'Is this available?'
        assert message.read is False

        conversation = conversation_registry.get_conversation(conversation_id)
        assert conversation.last_message == 'Is this available?'
        assert conversation.last_sender_id == BUYER_ID
        assert conversation.last_message_at == message.sent_at
        assert conversation.unread_count == {BUYER_ID: 0, SELLER_ID: 1}

    def test_counters_only_move_for_recipient(self, conversation_id):
        message_log.send(conversation_id, BUYER_ID, 'Nimal', 'one', SELLER_ID)
        message_log.send(conversation_id, BUYER_ID, 'Nimal', 'two', SELLER_ID)
        message_log.send(conversation_id, SELLER_ID, 'Craft Shop', 'reply', BUYER_ID)

        assert unread_for(conversation_id, SELLER_ID) == 2
        assert unread_for(conversation_id, BUYER_ID) == 1

    def test_timestamps_strictly_increase(self, conversation_id):
        stamps = [message_log.send(conversation_id, BUYER_ID, 'N', str(i), SELLER_ID).sent_at for i in range(5)]
        assert stamps == sorted(stamps)
        assert len(set(stamps)) == len(stamps)

    @pytest.mark.parametrize('text', ['', '   ', '\n\t'])
    def test_empty_text_rejected(self, conversation_id, text):
        with pytest.raises(ValidationFailed) as exc:
            message_log.send(conversation_id, BUYER_ID, 'Nimal', text, SELLER_ID)
        assert exc.value.code == 'EMPTY_MESSAGE'
        assert Message.objects.count() == 0

    def test_too_long_text_rejected(self, conversation_id, settings):
        with pytest.raises(ValidationFailed) as exc:
            message_log.send(conversation_id, BUYER_ID, 'Nimal', 'x' * (settings.MESSAGE_MAX_LENGTH + 1), SELLER_ID)
        assert exc.value.code == 'MESSAGE_TOO_LONG'

    def test_max_length_text_accepted(self, conversation_id, settings):
        message = message_log.send(conversation_id, BUYER_ID, 'Nimal', 'x' * settings.MESSAGE_MAX_LENGTH, SELLER_ID)
        assert len(message.text) == settings.MESSAGE_MAX_LENGTH

    def test_outsider_cannot_send(self, conversation_id):
        with pytest.raises(ValidationFailed) as exc:
            message_log.send(conversation_id, 'mallory', 'Mallory', 'hi', SELLER_ID)
        assert exc.value.code == 'NOT_A_PARTICIPANT'

    def test_sender_must_differ_from_recipient(self, conversation_id):
        with pytest.raises(ValidationFailed):
            message_log.send(conversation_id, BUYER_ID, 'Nimal', 'hi', BUYER_ID)

    def test_unknown_conversation(self):
        with pytest.raises(NotFound):
            message_log.send(uuid.uuid4(), BUYER_ID, 'Nimal', 'hi', SELLER_ID)


class TestCleanMessageText:

    @given(st.text(min_size=1, max_size=500).filter(lambda s: s.strip()))
    def test_accepted_text_is_trimmed(self, text):
        assert clean_message_text(text) == text.strip()

    @given(st.text(alphabet=' \t\n\r', max_size=20))
    def test_whitespace_only_rejected(self, text):
        with pytest.raises(ValidationFailed):
            clean_message_text(text)


class TestPagination:

    def _fill(self, conversation_id, count):
        return [
            str(message_log.send(conversation_id, BUYER_ID, 'Nimal', f'message {i}', SELLER_ID).id)
            for i in range(count)
        ]

    def test_recent_page_is_newest_in_chronological_order(self, conversation_id):
        ids = self._fill(conversation_id, 7)
        page = message_log.get_recent_messages(conversation_id, 3)

        assert [str(m.id) for m in page.messages] == ids[4:]
        assert page.has_more is True
        assert page.cursor is not None

    def test_empty_conversation(self, conversation_id):
        page = message_log.get_recent_messages(conversation_id, 10)
        assert page.messages == []
        assert page.cursor is None
        assert page.has_more is False

    def test_exact_page_size_has_no_more(self, conversation_id):
        self._fill(conversation_id, 3)
        page = message_log.get_recent_messages(conversation_id, 3)
        assert len(page.messages) == 3
        assert page.has_more is False

    def test_default_page_size(self, conversation_id, settings):
        settings.MESSAGE_PAGE_SIZE = 2
        self._fill(conversation_id, 3)
        assert len(message_log.get_recent_messages(conversation_id).messages) == 2

    def test_older_page_excludes_probe(self, conversation_id):
        ids = self._fill(conversation_id, 5)
        newest = message_log.get_recent_messages(conversation_id, 2)
        older = message_log.get_messages_paginated(conversation_id, 2, newest.cursor)

        assert [str(m.id) for m in older.messages] == ids[1:3]
        assert older.has_more is True

        oldest = message_log.get_messages_paginated(conversation_id, 2, older.cursor)
        assert [str(m.id) for m in oldest.messages] == ids[:1]
        assert oldest.has_more is False

    @pytest.mark.parametrize('cursor', ['garbage', 'e30', '!!!'])
    def test_malformed_cursor(self, conversation_id, cursor):
        with pytest.raises(ValidationFailed) as exc:
            message_log.get_messages_paginated(conversation_id, 10, cursor)
        assert exc.value.code == 'INVALID_CURSOR'

    @hypothesis_settings(
        max_examples=15,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    @given(count=st.integers(min_value=0, max_value=25), page_size=st.integers(min_value=1, max_value=8))
    def test_round_trip_visits_every_message_once(self, db, count, page_size):
        """Concatenating pages newest to oldest reproduces the full history."""
        suffix = uuid.uuid4().hex
        buyer, seller = f'b-{suffix}', f's-{suffix}'
        conversation_id = conversation_registry.get_or_create_conversation(buyer, seller, 'B', 'S')
        ids = [
            str(message_log.send(conversation_id, buyer, 'B', f'm{i}', seller).id)
            for i in range(count)
        ]

        pages = []
        page = message_log.get_recent_messages(conversation_id, page_size)
        pages.append(page.messages)
        while page.has_more:
            page = message_log.get_messages_paginated(conversation_id, page_size, page.cursor)
            pages.append(page.messages)

        collected = [str(m.id) for chunk in reversed(pages) for m in chunk]
        assert collected == ids


class TestMarkAsRead:

    def test_zeroes_counter_and_flags_messages(self, conversation_id):
        for i in range(3):
            message_log.send(conversation_id, BUYER_ID, 'Nimal', f'q{i}', SELLER_ID)
        own = message_log.send(conversation_id, SELLER_ID, 'Craft Shop', 'answer', BUYER_ID)

        flipped = message_log.mark_messages_as_read(conversation_id, SELLER_ID)

        assert flipped == 3
        assert unread_for(conversation_id, SELLER_ID) == 0
        assert not Message.objects.filter(conversation_id=conversation_id, read=False).exclude(sender_id=SELLER_ID).exists()
        # The reader's own message stays unread for the other side
        own.refresh_from_db()
        assert own.read is False
        assert unread_for(conversation_id, BUYER_ID) == 1

    def test_idempotent(self, conversation_id):
        message_log.send(conversation_id, BUYER_ID, 'Nimal', 'hi', SELLER_ID)
        assert message_log.mark_messages_as_read(conversation_id, SELLER_ID) == 1
        assert message_log.mark_messages_as_read(conversation_id, SELLER_ID) == 0
        assert unread_for(conversation_id, SELLER_ID) == 0

    def test_outsider_rejected(self, conversation_id):
        with pytest.raises(NotFound):
            message_log.mark_messages_as_read(conversation_id, 'mallory')

    def test_counter_reset_rolls_back_with_flags(self, conversation_id):
        message_log.send(conversation_id, BUYER_ID, 'Nimal', 'hi', SELLER_ID)

        with mock.patch.object(message_log, '_history', side_effect=DatabaseError('flags failed')):
            with pytest.raises(DatabaseError):
                message_log.mark_messages_as_read(conversation_id, SELLER_ID)

        assert unread_for(conversation_id, SELLER_ID) == 1
        assert Message.objects.filter(conversation_id=conversation_id, read=False).count() == 1

    @hypothesis_settings(
        max_examples=15,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    @given(st.lists(st.booleans(), max_size=12))
    def test_counter_matches_unread_flags(self, db, senders):
        """
        For any interleaving of senders the reader's counter equals the
        number of unread messages from the other side, and reading zeroes it.
        """
        suffix = uuid.uuid4().hex
        a, b = f'a-{suffix}', f'b-{suffix}'
        conversation_id = conversation_registry.get_or_create_conversation(a, b, 'A', 'B')
        for from_a in senders:
            sender, recipient = (a, b) if from_a else (b, a)
            message_log.send(conversation_id, sender, sender, 'x', recipient)

        unread_from_a = Message.objects.filter(conversation_id=conversation_id, sender_id=a, read=False).count()
        assert unread_for(conversation_id, b) == unread_from_a

        message_log.mark_messages_as_read(conversation_id, b)
        assert unread_for(conversation_id, b) == 0
        assert not Message.objects.filter(conversation_id=conversation_id, sender_id=a, read=False).exists()


class TestSubscriptions:

    def test_snapshot_on_subscribe_and_after_changes(self, conversation_id):
        snapshots = []
        unsubscribe = message_log.subscribe_to_messages(conversation_id, snapshots.append)
        assert snapshots == [[]]

        message_log.send(conversation_id, BUYER_ID, 'Nimal', 'first', SELLER_ID)
        message_log.send(conversation_id, SELLER_ID, 'Craft Shop', 'second', BUYER_ID)
        assert [m.text for m in snapshots[-1]] == ['first', 'second']

        message_log.mark_messages_as_read(conversation_id, SELLER_ID)
        assert snapshots[-1][0].read is True

        count = len(snapshots)
        unsubscribe()
        unsubscribe()
        message_log.send(conversation_id, BUYER_ID, 'Nimal', 'third', SELLER_ID)
        assert len(snapshots) == count

    def test_failing_subscriber_does_not_break_send(self, conversation_id):
        def broken(_messages):
            if _messages:
                raise RuntimeError('boom')

        good = []
        message_log.subscribe_to_messages(conversation_id, broken)
        message_log.subscribe_to_messages(conversation_id, good.append)

        message_log.send(conversation_id, BUYER_ID, 'Nimal', 'still delivered', SELLER_ID)
        assert [m.text for m in good[-1]] == ['still delivered']
