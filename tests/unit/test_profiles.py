"""
Unit tests for profile provisioning and profile edits.
"""

import pytest

from music_library.core.errors import AuthError, ConflictError, ValidationError
from music_library.db import models as m
from music_library.services import profiles


def _spotify_profile(**overrides):
    profile = {
        "id": "spotify-user-1",
        "display_name": "Abel",
        "email": "abel@example.com",
        "images": [{"url": "https://i.scdn.co/image/avatar"}],
    }
    profile.update(overrides)
    return profile


TOKENS = {"access_token": "at-1", "refresh_token": "rt-1", "expires_in": 3600}


class TestProvisionFromSpotify:
    """Tests for provision_from_spotify."""

    @pytest.mark.unit
    def test_first_login_creates_user_and_link(self, db):
        user, created = profiles.provision_from_spotify(db, _spotify_profile(), TOKENS)

        assert created is True
        assert user.spotify_id == "spotify-user-1"
        assert user.username == "abel"
        assert user.display_name == "Abel"
        assert user.avatar_url == "https://i.scdn.co/image/avatar"
        assert user.is_public is True

        link = db.get(m.ExternalLink, (user.id, "spotify"))
        assert (link.access_token, link.refresh_token) == ("at-1", "rt-1")
        assert link.expires_at is not None

    @pytest.mark.unit
    def test_second_login_reuses_user_and_keeps_refresh_token(self, db):
        first, _ = profiles.provision_from_spotify(db, _spotify_profile(), TOKENS)

        again, created = profiles.provision_from_spotify(db, _spotify_profile(), {"access_token": "at-2"})

        assert created is False
        assert again.id == first.id
        link = db.get(m.ExternalLink, (again.id, "spotify"))
        assert link.access_token == "at-2"
        assert link.refresh_token == "rt-1"
        assert profiles.get_spotify_access_token(db, again.id) == "at-2"

    @pytest.mark.unit
    def test_username_falls_back_to_spotify_id(self, db):
        user, _ = profiles.provision_from_spotify(db, _spotify_profile(email=None), TOKENS)
        assert user.username == "spotify-user-1"

    @pytest.mark.unit
    def test_username_collision_gets_suffix(self, db, make_user):
        make_user("abel")
        user, _ = profiles.provision_from_spotify(db, _spotify_profile(), TOKENS)
        assert user.username == "abel2"

    @pytest.mark.unit
    def test_long_username_truncated(self, db):
        profile = _spotify_profile(email="a_really_long_local_part_here@example.com")
        user, _ = profiles.provision_from_spotify(db, profile, TOKENS)
        assert len(user.username) == profiles.USERNAME_MAX


class TestUpdateProfile:
    """Tests for update_profile."""

    @pytest.mark.unit
    def test_updates_fields(self, db, alice):
        user = profiles.update_profile(db, alice.id, username="  alice_w ", display_name="Alice W")
        assert (user.username, user.display_name) == ("alice_w", "Alice W")

    @pytest.mark.unit
    def test_display_name_defaults_to_username(self, db, alice):
        user = profiles.update_profile(db, alice.id, username="alice_w", display_name="")
        assert user.display_name == "alice_w"

    @pytest.mark.unit
    @pytest.mark.parametrize("username", ["ab", "x" * 21])
    def test_username_length_bounds(self, db, alice, username):
        with pytest.raises(ValidationError) as exc:
            profiles.update_profile(db, alice.id, username=username)
        assert exc.value.message == "ユーザー名は3-20文字で入力してください"

    @pytest.mark.unit
    def test_blank_username_rejected(self, db, alice):
        with pytest.raises(ValidationError) as exc:
            profiles.update_profile(db, alice.id, username="   ")
        assert exc.value.message == "ユーザー名は必須です"

    @pytest.mark.unit
    def test_taken_username_conflicts(self, db, alice, bob):
        with pytest.raises(ConflictError) as exc:
            profiles.update_profile(db, alice.id, username="bob")
        assert exc.value.status_code == 409

    @pytest.mark.unit
    def test_keeping_own_username_allowed(self, db, alice):
        user = profiles.update_profile(db, alice.id, username="alice", display_name="Al")
        assert user.display_name == "Al"

    @pytest.mark.unit
    def test_get_profile_of_unknown_user(self, db):
        import uuid
        with pytest.raises(AuthError):
            profiles.get_profile(db, uuid.uuid4())
