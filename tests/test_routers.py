"""
Tests for the HTTP route handlers, called directly.
"""
import asyncio

import pytest
from fastapi import HTTPException

from parrot.api.routers import markov_router, reload_router, users_router
from parrot.services import markov
from parrot.services.chain_cache import get_chain_cache
from parrot.services.markov import TERMINAL_CHARS


def run(coro):
    return asyncio.run(coro)


class TestMarkovRouter:
    """Test suite for /markov routes."""

    def test_generate_one(self):
        req = markov_router.GenerateRequest(user_ids=["1001"], mode="one")

        result = run(markov_router.generate(req))

        assert result["ok"] is True
        assert result["data"]["user_ids"] == ["1001"]
        assert result["data"]["text"][-1] in TERMINAL_CHARS

    def test_generate_many_caches_chain(self):
        req = markov_router.GenerateRequest(user_ids=["1002", "1001"])

        run(markov_router.generate(req))

        assert ["1001", "1002"] in get_chain_cache()

    def test_generate_unknown_user_404(self):
        req = markov_router.GenerateRequest(user_ids=["404"])

        with pytest.raises(HTTPException) as exc_info:
            run(markov_router.generate(req))

        assert exc_info.value.status_code == 404

    def test_generate_strict_mode_short_sample_400(self, monkeypatch):
        """Test strict loading rejects a user whose messages include a short one."""
        monkeypatch.setattr(markov.settings, "MARKOV_SKIP_SHORT_INPUTS", False)
        req = markov_router.GenerateRequest(user_ids=["1001"])

        with pytest.raises(HTTPException) as exc_info:
            run(markov_router.generate(req))

        assert exc_info.value.status_code == 400
        assert "hi there" in exc_info.value.detail
        assert ["1001"] not in get_chain_cache()

    def test_stats(self):
        result = run(markov_router.stats(user_ids=["1001"]))

        assert result["data"]["samples"] == 4
        assert result["data"]["skipped"] == 1


class TestUsersRouter:
    """Test suite for /users routes."""

    def test_message_requires_opt_in(self):
        req = users_router.MessageRequest(text="hello there friend")

        with pytest.raises(HTTPException) as exc_info:
            run(users_router.add_message("555", req))

        assert exc_info.value.status_code == 403

    def test_opt_in_then_message_then_generate(self, memory_store):
        run(users_router.opt_in("555"))
        run(users_router.add_message("555", users_router.MessageRequest(text="hello there friend")))

        result = run(markov_router.generate(markov_router.GenerateRequest(user_ids=["555"], mode="one")))

        assert result["data"]["text"].startswith("hello there friend")
        assert memory_store.count_messages("555") == 1

    def test_new_message_invalidates_chain(self):
        run(markov_router.generate(markov_router.GenerateRequest(user_ids=["1001"])))
        assert ["1001"] in get_chain_cache()

        run(users_router.add_message("1001", users_router.MessageRequest(text="one more message")))

        assert ["1001"] not in get_chain_cache()

    def test_leave_deletes_opted_in_user(self, memory_store):
        run(markov_router.generate(markov_router.GenerateRequest(user_ids=["1001", "1002"])))

        result = run(users_router.member_leave("1001"))

        assert result["data"]["deleted"] is True
        assert result["data"]["deleted_messages"] == 5
        assert memory_store.count_messages("1001") == 0
        assert len(get_chain_cache()) == 0

    def test_leave_ignores_unknown_user(self, memory_store):
        result = run(users_router.member_leave("999"))

        assert result["data"]["deleted"] is False
        assert memory_store.count_messages("1001") == 5

    def test_opt_out(self, memory_store):
        result = run(users_router.opt_out("1002"))

        assert result["data"]["deleted_messages"] == 4
        assert not memory_store.is_user_opted_in("1002")

    def test_user_status(self):
        result = run(users_router.user_status("1001"))

        assert result["data"] == {"user_id": "1001", "opted_in": True, "messages": 5}


class TestReloadRouter:
    """Test suite for /reload routes."""

    def test_reload_all(self):
        run(markov_router.generate(markov_router.GenerateRequest(user_ids=["1001"])))
        run(markov_router.generate(markov_router.GenerateRequest(user_ids=["1002"])))

        result = run(reload_router.reload_chains(reload_router.ReloadRequest()))

        assert result.dropped_chains == 2
        assert len(get_chain_cache()) == 0

    def test_reload_selected_users(self):
        run(markov_router.generate(markov_router.GenerateRequest(user_ids=["1001"])))
        run(markov_router.generate(markov_router.GenerateRequest(user_ids=["1002"])))

        result = run(reload_router.reload_chains(reload_router.ReloadRequest(user_ids=["1002"])))

        assert result.dropped_chains == 1
        status = run(reload_router.reload_status())
        assert status["sessions"] == [["1001"]]
