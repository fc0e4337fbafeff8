"""
Circles Backend — Friend Service Unit Tests
=============================================

What:  Tests for suggestions, friend requests, the friend list and presence.
How:   Mock DB sessions; `execute.side_effect` feeds results in query order.
"""

import uuid
from datetime import date, datetime, timedelta, timezone

import pytest

from app.exceptions import DatabaseError, NotFoundError, ValidationError
from app.models.friend_request import (
    STATUS_ACCEPTED,
    STATUS_PENDING,
    STATUS_REJECTED,
    FriendRequest,
)
from app.services.friend_service import FriendService, describe_presence, mutual_label

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def make_request(from_user_id, to_user_id, status=STATUS_PENDING, **overrides):
    fields = {
        "id": uuid.uuid4(),
        "from_user_id": from_user_id,
        "to_user_id": to_user_id,
        "message": "",
        "status": status,
    }
    fields.update(overrides)
    return FriendRequest(**fields)


class TestPresence:

    @pytest.mark.parametrize(
        "ago, expected",
        [
            (timedelta(minutes=2), "Active now"),
            (timedelta(minutes=42), "Active 42m ago"),
            (timedelta(hours=3, minutes=10), "Active 3h ago"),
            (timedelta(hours=30), "Active yesterday"),
            (timedelta(days=4, hours=1), "Active 4d ago"),
        ],
    )
    def test_labels(self, ago, expected):
        assert describe_presence(NOW - ago, NOW) == expected

    def test_never_seen_is_offline(self):
        assert describe_presence(None, NOW) == "Offline"

    def test_naive_timestamps_are_utc(self):
        naive = (NOW - timedelta(minutes=20)).replace(tzinfo=None)
        assert describe_presence(naive, NOW) == "Active 20m ago"

    def test_mutual_label(self):
        assert mutual_label(0) == "0 mutual friends"
        assert mutual_label(3) == "3 mutual friends"


class TestSuggestions:

    def setup_method(self):
        self.service = FriendService()

    @pytest.mark.asyncio
    async def test_requires_date_of_birth(self, mock_db_session, current_user):
        current_user.date_of_birth = None

        with pytest.raises(ValidationError, match="User date of birth not found"):
            await self.service.get_suggestions(mock_db_session, current_user)

        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_without_friends_skips_mutual_query(
        self, mock_db_session, make_result, make_user, current_user
    ):
        grace = make_user(name="Grace", date_of_birth=date(1995, 3, 1))
        mock_db_session.execute.side_effect = [
            make_result(rows=[]),
            make_result(scalars=[grace]),
        ]

        result = await self.service.get_suggestions(mock_db_session, current_user)

        assert mock_db_session.execute.await_count == 2
        assert len(result.suggestions) == 1
        suggestion = result.suggestions[0]
        assert suggestion.id == grace.id
        assert suggestion.date_of_birth == date(1995, 3, 1)
        assert suggestion.status == "0 mutual friends"

    @pytest.mark.asyncio
    async def test_counts_mutual_friends(
        self, mock_db_session, make_result, make_user, current_user
    ):
        friend_a = uuid.uuid4()
        friend_b = uuid.uuid4()
        grace = make_user(name="Grace", date_of_birth=date(1995, 3, 1))
        alan = make_user(name="Alan", date_of_birth=date(1995, 6, 23))
        mock_db_session.execute.side_effect = [
            # caller's accepted edges
            make_result(rows=[(current_user.id, friend_a), (friend_b, current_user.id)]),
            make_result(scalars=[alan, grace]),
            # candidate edges into the caller's friends
            make_result(rows=[(grace.id, friend_a), (friend_b, grace.id), (alan.id, friend_b)]),
        ]

        result = await self.service.get_suggestions(mock_db_session, current_user)

        statuses = {s.name: s.status for s in result.suggestions}
        assert statuses == {"Alan": "1 mutual friends", "Grace": "2 mutual friends"}
        assert [s.name for s in result.suggestions] == ["Alan", "Grace"]

    @pytest.mark.asyncio
    async def test_friendship_in_both_directions_counts_once(
        self, mock_db_session, make_result, make_user, current_user
    ):
        friend_id = uuid.uuid4()
        grace = make_user(name="Grace", date_of_birth=date(1995, 3, 1))
        mock_db_session.execute.side_effect = [
            make_result(rows=[(current_user.id, friend_id)]),
            make_result(scalars=[grace]),
            make_result(rows=[(grace.id, friend_id), (friend_id, grace.id)]),
        ]

        result = await self.service.get_suggestions(mock_db_session, current_user)

        assert result.suggestions[0].status == "1 mutual friends"

    @pytest.mark.asyncio
    async def test_database_failure_is_wrapped(self, mock_db_session, current_user):
        mock_db_session.execute.side_effect = RuntimeError("boom")

        with pytest.raises(DatabaseError):
            await self.service.get_suggestions(mock_db_session, current_user)


class TestSendRequest:

    def setup_method(self):
        self.service = FriendService()

    @pytest.mark.asyncio
    async def test_rejects_self(self, mock_db_session, current_user):
        with pytest.raises(ValidationError, match="to yourself"):
            await self.service.send_request(mock_db_session, current_user, current_user.id)

        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_recipient(self, mock_db_session, current_user):
        mock_db_session.get.return_value = None

        with pytest.raises(NotFoundError):
            await self.service.send_request(mock_db_session, current_user, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_duplicate_pending_request(
        self, mock_db_session, make_result, make_user, current_user
    ):
        grace = make_user(name="Grace")
        mock_db_session.get.return_value = grace
        mock_db_session.execute.return_value = make_result(
            scalars=[make_request(current_user.id, grace.id)]
        )

        with pytest.raises(ValidationError, match="Friend request already sent"):
            await self.service.send_request(mock_db_session, current_user, grace.id)

        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_already_friends(self, mock_db_session, make_result, make_user, current_user):
        grace = make_user(name="Grace")
        mock_db_session.get.return_value = grace
        mock_db_session.execute.return_value = make_result(
            scalars=[make_request(grace.id, current_user.id, STATUS_ACCEPTED)]
        )

        with pytest.raises(ValidationError, match="already friends"):
            await self.service.send_request(mock_db_session, current_user, grace.id)

    @pytest.mark.asyncio
    async def test_pending_request_the_other_way_does_not_block(
        self, mock_db_session, make_result, make_user, current_user
    ):
        grace = make_user(name="Grace")
        mock_db_session.get.return_value = grace
        mock_db_session.execute.return_value = make_result(
            scalars=[make_request(grace.id, current_user.id)]
        )

        result = await self.service.send_request(mock_db_session, current_user, grace.id)

        assert result.message == "Friend request sent successfully"
        mock_db_session.add.assert_called_once()

    @pytest.mark.asyncio
    async def test_creates_pending_request(
        self, mock_db_session, make_result, make_user, current_user
    ):
        grace = make_user(name="Grace")
        mock_db_session.get.return_value = grace
        mock_db_session.execute.return_value = make_result(scalars=[])

        result = await self.service.send_request(
            mock_db_session, current_user, grace.id, "Hi Grace!"
        )

        assert result.success is True
        created = mock_db_session.add.call_args.args[0]
        assert created.from_user_id == current_user.id
        assert created.to_user_id == grace.id
        assert created.status == STATUS_PENDING
        assert created.message == "Hi Grace!"
        mock_db_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_message_is_stored_empty(
        self, mock_db_session, make_result, make_user, current_user
    ):
        grace = make_user(name="Grace")
        mock_db_session.get.return_value = grace
        mock_db_session.execute.return_value = make_result(scalars=[])

        await self.service.send_request(mock_db_session, current_user, grace.id)

        assert mock_db_session.add.call_args.args[0].message == ""


class TestFriendList:

    def setup_method(self):
        self.service = FriendService()

    @pytest.mark.asyncio
    async def test_no_friends(self, mock_db_session, make_result, current_user):
        mock_db_session.execute.return_value = make_result(rows=[])

        result = await self.service.list_friends(mock_db_session, current_user)

        assert result.friends == []
        assert mock_db_session.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_friends_carry_presence(
        self, mock_db_session, make_result, make_user, current_user
    ):
        grace = make_user(name="Grace", last_active_at=NOW - timedelta(minutes=1))
        alan = make_user(name="Alan", last_active_at=None)
        mock_db_session.execute.side_effect = [
            make_result(rows=[(current_user.id, grace.id), (alan.id, current_user.id)]),
            make_result(scalars=[alan, grace]),
        ]

        result = await self.service.list_friends(mock_db_session, current_user, now=NOW)

        assert [(f.name, f.status) for f in result.friends] == [
            ("Alan", "Offline"),
            ("Grace", "Active now"),
        ]
        body = result.model_dump(by_alias=True, mode="json")
        assert body["success"] is True
        assert body["friends"][0]["_id"] == str(alan.id)


class TestIncomingRequests:

    def setup_method(self):
        self.service = FriendService()

    @pytest.mark.asyncio
    async def test_lists_pending_with_sender(
        self, mock_db_session, make_result, make_user, current_user
    ):
        grace = make_user(name="Grace")
        pending = make_request(
            grace.id,
            current_user.id,
            message="Let's connect",
            from_user=grace,
            created_at=NOW,
        )
        mock_db_session.execute.return_value = make_result(scalars=[pending])

        result = await self.service.list_incoming(mock_db_session, current_user)

        assert len(result.requests) == 1
        incoming = result.requests[0]
        assert incoming.id == pending.id
        assert incoming.message == "Let's connect"
        assert incoming.from_user.name == "Grace"


class TestRespond:

    def setup_method(self):
        self.service = FriendService()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "accept, status", [(True, STATUS_ACCEPTED), (False, STATUS_REJECTED)]
    )
    async def test_answers_pending_request(
        self, mock_db_session, make_result, current_user, accept, status
    ):
        pending = make_request(uuid.uuid4(), current_user.id)
        mock_db_session.get.return_value = pending
        mock_db_session.execute.return_value = make_result(scalars=[])

        result = await self.service.respond(mock_db_session, current_user, pending.id, accept)

        assert pending.status == status
        assert result.message == f"Friend request {status}"
        mock_db_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_accepting_closes_request_sent_the_other_way(
        self, mock_db_session, make_result, current_user
    ):
        grace_id = uuid.uuid4()
        incoming = make_request(grace_id, current_user.id)
        outgoing = make_request(current_user.id, grace_id)
        mock_db_session.get.return_value = incoming
        mock_db_session.execute.return_value = make_result(scalars=[outgoing])

        await self.service.respond(mock_db_session, current_user, incoming.id, True)

        assert incoming.status == STATUS_ACCEPTED
        assert outgoing.status == STATUS_REJECTED

    @pytest.mark.asyncio
    async def test_rejecting_leaves_other_direction_alone(
        self, mock_db_session, current_user
    ):
        incoming = make_request(uuid.uuid4(), current_user.id)
        mock_db_session.get.return_value = incoming

        await self.service.respond(mock_db_session, current_user, incoming.id, False)

        assert incoming.status == STATUS_REJECTED
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cannot_accept_when_already_friends(
        self, mock_db_session, make_result, current_user
    ):
        grace_id = uuid.uuid4()
        incoming = make_request(grace_id, current_user.id)
        mock_db_session.get.return_value = incoming
        mock_db_session.execute.return_value = make_result(
            scalars=[make_request(current_user.id, grace_id, STATUS_ACCEPTED)]
        )

        with pytest.raises(ValidationError, match="already friends"):
            await self.service.respond(mock_db_session, current_user, incoming.id, True)

        assert incoming.status == STATUS_PENDING
        mock_db_session.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_request_for_someone_else_is_not_found(self, mock_db_session, current_user):
        mock_db_session.get.return_value = make_request(uuid.uuid4(), uuid.uuid4())

        with pytest.raises(NotFoundError):
            await self.service.respond(mock_db_session, current_user, uuid.uuid4(), True)

    @pytest.mark.asyncio
    async def test_answered_request_cannot_change(self, mock_db_session, current_user):
        answered = make_request(uuid.uuid4(), current_user.id, STATUS_REJECTED)
        mock_db_session.get.return_value = answered

        with pytest.raises(ValidationError, match="already rejected"):
            await self.service.respond(mock_db_session, current_user, answered.id, True)

        assert answered.status == STATUS_REJECTED
