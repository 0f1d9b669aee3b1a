from unittest.mock import AsyncMock

import pytest

from trivia_live import socket_manager
from trivia_live.dependencies import set_storage
from trivia_live.services import game_flow


@pytest.fixture(autouse=True)
def wired(storage, monkeypatch):
    set_storage(storage)
    monkeypatch.setattr(socket_manager.sio, "enter_room", AsyncMock())
    yield
    set_storage(None)


class TestGameJoin:
    async def test_joins_room_and_acks_state(self, seed_game):
        seeded = await seed_game()

        ack = await socket_manager.game_join("sid_1", {"joinCode": seeded.game.join_code.lower()})

        assert ack["ok"] is True
        assert ack["state"]["game"]["gameId"] == seeded.game.game_id
        assert [r["roundNumber"] for r in ack["state"]["rounds"]] == [1]
        socket_manager.sio.enter_room.assert_awaited_once_with("sid_1", f"game:{seeded.game.join_code}")

    async def test_unknown_code(self):
        ack = await socket_manager.game_join("sid_1", {"joinCode": "ZZZZZZ"})
        assert ack == {"ok": False, "error": "Game 'ZZZZZZ' not found"}
        socket_manager.sio.enter_room.assert_not_awaited()

    async def test_missing_code(self):
        ack = await socket_manager.game_join("sid_1", {})
        assert ack["ok"] is False

    @pytest.mark.parametrize("payload", [None, "K9Q2TZ", {"joinCode": None}, {"joinCode": "  "}])
    async def test_malformed_payload_is_refused(self, payload):
        ack = await socket_manager.game_join("sid_1", payload)
        assert ack == {"ok": False, "error": "Join code required"}
        socket_manager.sio.enter_room.assert_not_awaited()


async def test_broadcast_sends_state_to_game_room(storage, seed_game, emitted):
    seeded = await seed_game()
    await game_flow.start_round(storage, seeded.game.game_id)

    await socket_manager.broadcast_game_state(seeded.game.game_id)

    event, payload = emitted.await_args.args
    assert event == "game:state"
    assert payload["game"]["state"] == "in_round"
    assert payload["currentQuestion"]["questionId"] == seeded.questions[0][0].question_id
    assert emitted.await_args.kwargs["room"] == f"game:{seeded.game.join_code}"


async def test_broadcast_for_missing_game_is_silent(emitted):
    await socket_manager.broadcast_game_state("game_missing")
    emitted.assert_not_awaited()


async def test_ping_echoes_client_time():
    ack = await socket_manager.ping("sid_1", {"t": 123})
    assert ack["t"] == 123
    assert "serverTime" in ack


async def test_ping_without_payload():
    ack = await socket_manager.ping("sid_1", None)
    assert ack["t"] is None
