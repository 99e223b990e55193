"""
Unit tests for the social graph: requests, acceptance, removal and search.
"""

import pytest

from music_library.core.errors import ConflictError, NotFoundError, SelfRequestError, ValidationError
from music_library.db import models as m
from music_library.services import events, friends


def _edges(db):
    db.expire_all()
    return db.query(m.Friend).all()


class TestSendFriendRequest:
    """Tests for send_friend_request."""

    @pytest.mark.unit
    def test_creates_pending_edge(self, db, alice, bob):
        edge = friends.send_friend_request(db, alice.id, bob.id)
        assert (edge.user_id, edge.friend_id, edge.status) == (alice.id, bob.id, "pending")

    @pytest.mark.unit
    def test_self_request_rejected(self, db, alice):
        with pytest.raises(SelfRequestError) as exc:
            friends.send_friend_request(db, alice.id, alice.id)
        assert exc.value.status_code == 400
        assert _edges(db) == []

    @pytest.mark.unit
    def test_unknown_target_not_found(self, db, alice):
        import uuid
        with pytest.raises(NotFoundError):
            friends.send_friend_request(db, alice.id, uuid.uuid4())

    @pytest.mark.unit
    def test_repeat_request_conflicts(self, db, alice, bob):
        friends.send_friend_request(db, alice.id, bob.id)
        with pytest.raises(ConflictError) as exc:
            friends.send_friend_request(db, alice.id, bob.id)
        assert exc.value.message == "既にフレンド申請中です"
        assert len(_edges(db)) == 1

    @pytest.mark.unit
    def test_reverse_request_conflicts(self, db, alice, bob):
        """A pending request in either direction blocks a new one."""
        friends.send_friend_request(db, alice.id, bob.id)
        with pytest.raises(ConflictError):
            friends.send_friend_request(db, bob.id, alice.id)

    @pytest.mark.unit
    def test_existing_friendship_conflicts(self, db, alice, bob):
        friends.send_friend_request(db, alice.id, bob.id)
        friends.accept_friend_request(db, bob.id, alice.id)
        with pytest.raises(ConflictError) as exc:
            friends.send_friend_request(db, bob.id, alice.id)
        assert exc.value.message == "既にフレンドです"

    @pytest.mark.unit
    def test_blocked_edge_conflicts(self, db, alice, bob):
        db.add(m.Friend(user_id=bob.id, friend_id=alice.id, status="blocked"))
        db.commit()
        with pytest.raises(ConflictError) as exc:
            friends.send_friend_request(db, alice.id, bob.id)
        assert exc.value.message == "このユーザーはブロックされています"

    @pytest.mark.unit
    def test_publishes_request_sent(self, db, alice, bob):
        seen = []
        events.bus.subscribe(events.FriendRequestSent, seen.append)
        friends.send_friend_request(db, alice.id, bob.id)
        assert seen == [events.FriendRequestSent(user_id=alice.id, friend_id=bob.id)]


class TestFriendLifecycle:
    """Accept, reject and remove."""

    @pytest.mark.unit
    def test_accept_then_listed_on_both_sides(self, db, alice, bob):
        friends.send_friend_request(db, alice.id, bob.id)

        assert friends.accept_friend_request(db, bob.id, alice.id) == 1

        assert [u.id for u in friends.list_friends(db, alice.id)] == [bob.id]
        assert [u.id for u in friends.list_friends(db, bob.id)] == [alice.id]

    @pytest.mark.unit
    def test_accept_only_applies_to_recipient(self, db, alice, bob):
        """The requester cannot accept their own request."""
        friends.send_friend_request(db, alice.id, bob.id)
        assert friends.accept_friend_request(db, alice.id, bob.id) == 0
        assert _edges(db)[0].status == "pending"

    @pytest.mark.unit
    def test_accept_without_request_is_noop(self, db, alice, bob):
        seen = []
        events.bus.subscribe(events.FriendRequestAccepted, seen.append)
        assert friends.accept_friend_request(db, bob.id, alice.id) == 0
        assert seen == []

    @pytest.mark.unit
    def test_reject_is_idempotent(self, db, alice, bob):
        friends.send_friend_request(db, alice.id, bob.id)
        assert friends.reject_friend_request(db, bob.id, alice.id) == 1
        assert friends.reject_friend_request(db, bob.id, alice.id) == 0
        assert _edges(db) == []

    @pytest.mark.unit
    @pytest.mark.parametrize("remover", ["alice", "bob"])
    def test_either_side_can_remove(self, db, alice, bob, remover):
        friends.send_friend_request(db, alice.id, bob.id)
        friends.accept_friend_request(db, bob.id, alice.id)
        me, other = (alice, bob) if remover == "alice" else (bob, alice)

        friends.remove_friend(db, me.id, other.id)

        assert _edges(db) == []
        assert friends.list_friends(db, alice.id) == []

    @pytest.mark.unit
    def test_request_possible_again_after_removal(self, db, alice, bob):
        friends.send_friend_request(db, alice.id, bob.id)
        friends.accept_friend_request(db, bob.id, alice.id)
        friends.remove_friend(db, bob.id, alice.id)

        edge = friends.send_friend_request(db, bob.id, alice.id)
        assert edge.status == "pending"

    @pytest.mark.unit
    def test_incoming_requests_and_count(self, db, alice, bob, make_user):
        carol = make_user("carol")
        friends.send_friend_request(db, alice.id, bob.id)
        friends.send_friend_request(db, carol.id, bob.id)
        friends.send_friend_request(db, bob.id, make_user("dave").id)

        incoming = friends.list_incoming_requests(db, bob.id)

        assert {r["user"].id for r in incoming} == {alice.id, carol.id}
        assert all(r["status"] == "pending" for r in incoming)
        assert friends.pending_requests_count(db, bob.id) == 2
        assert friends.pending_requests_count(db, alice.id) == 0


class TestSearchUsers:
    """Tests for search_users."""

    @pytest.mark.unit
    def test_query_must_be_two_chars(self, db, alice):
        with pytest.raises(ValidationError) as exc:
            friends.search_users(db, alice.id, " a ")
        assert exc.value.message == "検索クエリは2文字以上必要です"

    @pytest.mark.unit
    def test_matches_username_or_display_name(self, db, alice, make_user):
        make_user("weeknd_fan", display_name="Abel")
        make_user("zed", display_name="Weekender")
        make_user("other", display_name="Nobody")

        found = {u.username for u in friends.search_users(db, alice.id, "week")}
        assert found == {"weeknd_fan", "zed"}

    @pytest.mark.unit
    def test_excludes_self_and_private_users(self, db, alice, make_user):
        make_user("alicia", is_public=False)
        assert friends.search_users(db, alice.id, "ali") == []

    @pytest.mark.unit
    def test_at_most_ten_results(self, db, alice, make_user):
        for n in range(12):
            make_user(f"member{n:02d}")
        assert len(friends.search_users(db, alice.id, "member")) == 10

    @pytest.mark.unit
    def test_underscore_matches_literally(self, db, alice, make_user):
        make_user("a_b_c")
        make_user("axbxc")
        assert [u.username for u in friends.search_users(db, alice.id, "a_b")] == ["a_b_c"]

    @pytest.mark.unit
    def test_percent_matches_literally(self, db, alice, make_user):
        make_user("rate100", display_name="Rate 100")
        make_user("full100", display_name="100% Fan")
        assert [u.username for u in friends.search_users(db, alice.id, "0%")] == ["full100"]
