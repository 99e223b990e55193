"""
Unit tests for the out-of-band track repair job.
"""

import httpx
import pytest

from music_library.db import models as m
from music_library.services import track_repair
from tests.helpers import spotify_track


@pytest.fixture
def virtual_user(make_user):
    return make_user("virtual_a", spotify_id="virtual_a")


def _search_handler(matches, calls=None):
    """Answer each search with the match registered for its title, if any."""
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        q = request.url.params["q"]
        for title, result in matches.items():
            if f'track:"{title}"' in q:
                if isinstance(result, int):
                    return httpx.Response(result, json={"error": {"status": result}})
                return httpx.Response(200, json={"tracks": {"items": [result]}})
        return httpx.Response(200, json={"tracks": {"items": []}})
    return handler


class TestRepairTracks:
    """Tests for repair_tracks."""

    @pytest.mark.unit
    def test_virtual_users_selected_by_spotify_id_prefix(self, db, alice, virtual_user):
        assert track_repair.virtual_user_ids(db) == [virtual_user.id]

    @pytest.mark.asyncio
    async def test_fixes_skips_and_fails_per_item(self, db, virtual_user, make_shelf, make_item, mock_spotify):
        shelf = make_shelf(virtual_user)
        fixable = make_item(shelf, "Blinding Lights", 0, spotify_id="stale", artist="The Weeknd")
        unknown = make_item(shelf, "Unknown Song", 1, spotify_id="keep-me")
        broken = make_item(shelf, "Rate Limited", 2, spotify_id="keep-too")
        album = make_item(shelf, "An Album", 3, spotify_type="album", spotify_id="album-id")

        mock_spotify(_search_handler({
            "Blinding Lights": spotify_track("0VjIjW4GlUZAMYd2vXMi3b", "Blinding Lights", image="https://i.scdn.co/image/new"),
            "Rate Limited": 429,
        }))

        report = await track_repair.repair_tracks(db, "operator-token", delay=0)

        assert (report.fixed, report.skipped, report.failed) == (1, 1, 1)
        db.expire_all()
        fixed = db.get(m.ShelfItem, fixable.id)
        assert fixed.spotify_id == "0VjIjW4GlUZAMYd2vXMi3b"
        assert fixed.image_url == "https://i.scdn.co/image/new"
        assert fixed.album == "After Hours"
        assert db.get(m.ShelfItem, unknown.id).spotify_id == "keep-me"
        assert db.get(m.ShelfItem, broken.id).spotify_id == "keep-too"
        assert db.get(m.ShelfItem, album.id).spotify_id == "album-id"

    @pytest.mark.asyncio
    async def test_only_selected_users_touched(self, db, alice, virtual_user, make_shelf, make_item, mock_spotify):
        theirs = make_item(make_shelf(alice), "Blinding Lights", spotify_id="alice-original")
        calls = []
        mock_spotify(_search_handler({"Blinding Lights": spotify_track("new-id", "Blinding Lights")}, calls))

        report = await track_repair.repair_tracks(db, "operator-token", delay=0)

        assert (report.fixed, report.skipped, report.failed) == (0, 0, 0)
        assert calls == []
        db.expire_all()
        assert db.get(m.ShelfItem, theirs.id).spotify_id == "alice-original"

    @pytest.mark.asyncio
    async def test_explicit_user_list(self, db, alice, make_shelf, make_item, mock_spotify):
        item = make_item(make_shelf(alice), "Blinding Lights", spotify_id="old")
        mock_spotify(_search_handler({"Blinding Lights": spotify_track("new-id", "Blinding Lights")}))

        report = await track_repair.repair_tracks(db, "operator-token", user_ids=[alice.id], delay=0)

        assert report.fixed == 1
        db.expire_all()
        assert db.get(m.ShelfItem, item.id).spotify_id == "new-id"

    @pytest.mark.asyncio
    async def test_no_users_is_empty_report(self, db, alice, mock_spotify):
        mock_spotify(_search_handler({}))
        report = await track_repair.repair_tracks(db, "operator-token", delay=0)
        assert report == track_repair.RepairReport()
