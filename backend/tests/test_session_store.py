"""Tests for per-site session persistence."""

import json

from tracker.scrapers.sites import Site

from fakes import make_context


class TestSessionStore:
    """Tests for SessionStore."""

    def test_save_and_load(self, session_store):
        """A saved state is loaded back unchanged."""
        state = {"cookies": [{"name": "_abck", "value": "x"}], "origins": []}
        session_store.save(Site.ZARA, state)

        assert session_store.has(Site.ZARA)
        assert session_store.path_for(Site.ZARA).name == "zara-session.json"
        assert session_store.load(Site.ZARA) == state

    def test_save_overwrites(self, session_store):
        session_store.save(Site.ZARA, {"cookies": [{"name": "a"}], "origins": []})
        session_store.save(Site.ZARA, {"cookies": [], "origins": []})

        assert session_store.load(Site.ZARA) == {"cookies": [], "origins": []}
        leftovers = [p for p in session_store.sessions_dir.iterdir() if p.suffix == ".tmp"]
        assert leftovers == []

    def test_missing_session(self, session_store):
        assert session_store.load(Site.BERSHKA) is None
        assert not session_store.has(Site.BERSHKA)
        assert session_store.age_minutes(Site.BERSHKA) == -1

    def test_corrupt_file_is_ignored(self, session_store):
        """An unreadable file behaves like a missing session."""
        session_store.sessions_dir.mkdir(parents=True)
        session_store.path_for(Site.ZARA).write_text("{not json", encoding="utf-8")

        assert session_store.load(Site.ZARA) is None

    def test_non_object_file_is_ignored(self, session_store):
        session_store.sessions_dir.mkdir(parents=True)
        session_store.path_for(Site.ZARA).write_text(json.dumps([1, 2]), encoding="utf-8")

        assert session_store.load(Site.ZARA) is None

    def test_delete(self, session_store):
        session_store.save(Site.ZARA, {"cookies": [], "origins": []})
        session_store.delete(Site.ZARA)
        session_store.delete(Site.ZARA)

        assert not session_store.has(Site.ZARA)

    def test_age_of_fresh_session(self, session_store):
        session_store.save(Site.ZARA, {"cookies": [], "origins": []})
        assert session_store.age_minutes(Site.ZARA) == 0

    async def test_save_from_context(self, session_store):
        context = make_context(state={"cookies": [{"name": "ak_bmsc"}], "origins": []})

        await session_store.save_from_context(Site.ZARA, context)

        assert session_store.load(Site.ZARA)["cookies"][0]["name"] == "ak_bmsc"

    async def test_save_from_closed_context_is_swallowed(self, session_store):
        context = make_context()
        context.storage_state.side_effect = RuntimeError("Target closed")

        await session_store.save_from_context(Site.ZARA, context)

        assert not session_store.has(Site.ZARA)
