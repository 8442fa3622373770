import asyncio
import json

from host.server import OUTBOX_LIMIT, ClientSession, HostServer
from judgment.events import ForcedDisconnect, LogLine
from judgment.models import GameConfig, Phase


# Fake sockets so we can exercise the host without opening real connections.
class DummyWebSocket:
    def __init__(self) -> None:
        self.sent: list[str] = []
        self.closed = False
        self.close_code = None

    async def send(self, message: str) -> None:
        self.sent.append(message)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed = True
        self.close_code = code


def setup_server(num_players: int = 3) -> tuple[HostServer, list[ClientSession]]:
    server = HostServer(GameConfig())
    sessions: list[ClientSession] = []
    for idx in range(num_players):
        session = ClientSession(connection_id=f"c{idx}", websocket=DummyWebSocket())
        server.sessions[session.connection_id] = session
        sessions.append(session)
    return server, sessions


def drain(session: ClientSession) -> list[dict]:
    messages = []
    while not session.outbox.empty():
        raw, _ = session.outbox.get_nowait()
        messages.append(json.loads(raw))
    return messages


def send(server: HostServer, session: ClientSession, **message) -> None:
    server._handle_message(session, json.dumps(message))


def seat_everyone(server: HostServer, sessions: list[ClientSession]) -> None:
    for idx, session in enumerate(sessions):
        send(server, session, type="join", name=f"Player{idx}", player_id=f"p{idx}")
        send(server, session, type="set_ready")


def test_join_replies_with_player_id_and_broadcasts_lobby():
    server, sessions = setup_server(2)
    send(server, sessions[0], type="join", name="Ada", player_id="ada")

    first = drain(sessions[0])
    assert [message["type"] for message in first] == ["join_success", "lobby"]
    assert first[0]["player_id"] == "ada"
    assert first[0]["v"] == 1 and "ts" in first[0]
    lobby = drain(sessions[1])
    assert lobby[-1]["type"] == "lobby"
    assert lobby[-1]["players"][0]["is_host"] is True


def test_malformed_messages_get_error_envelopes():
    server, sessions = setup_server(1)
    server._handle_message(sessions[0], "not json")
    send(server, sessions[0], type="fold")
    server._handle_message(sessions[0], json.dumps([1, 2]))

    errors = drain(sessions[0])
    assert [message["code"] for message in errors] == ["BAD_SCHEMA", "UNKNOWN_TYPE", "BAD_SCHEMA"]
    assert all(message["type"] == "error" for message in errors)


def test_game_state_is_rendered_per_viewer():
    async def scenario():
        server, sessions = setup_server(3)
        seat_everyone(server, sessions)
        send(server, sessions[0], type="start_game")
        assert server.engine.session.phase == Phase.BIDDING

        for idx, session in enumerate(sessions):
            states = [message for message in drain(session) if message["type"] == "game_state"]
            players = states[-1]["state"]["players"]
            assert [("hand" in player) for player in players] == [seat == idx for seat in range(3)]
            assert states[-1]["state"]["you"]["seat"] == idx

    asyncio.run(scenario())


def test_bid_prompt_and_invalid_bid_reach_only_the_bidder():
    async def scenario():
        server, sessions = setup_server(3)
        seat_everyone(server, sessions)
        send(server, sessions[0], type="start_game")
        bidder_msgs = drain(sessions[1])
        assert {"type": "bid_prompt"}.items() <= bidder_msgs[-1].items()
        assert bidder_msgs[-1]["max_bid"] == 17
        drain(sessions[0])

        send(server, sessions[1], type="submit_bid", bid=99)
        notice = drain(sessions[1])
        assert notice == [{"type": "invalid_bid", "v": 1, "ts": notice[0]["ts"], "message": "Bid must be between 0 and 17."}]
        assert drain(sessions[0]) == []

        send(server, sessions[0], type="submit_bid", bid=1)
        assert drain(sessions[0])[-1]["code"] == "NOT_YOUR_TURN"

        send(server, sessions[1], type="submit_bid", bid=3)
        assert server.engine.session.players[1].bid == 3
        logs = [message["message"] for message in drain(sessions[2]) if message["type"] == LogLine.type]
        assert "Player1 bids 3." in logs

    asyncio.run(scenario())


def test_unregister_hands_disconnect_to_engine():
    async def scenario():
        server, sessions = setup_server(3)
        seat_everyone(server, sessions)
        send(server, sessions[0], type="start_game")
        server._unregister(sessions[2])
        session = server.engine.session
        assert "c2" not in server.sessions
        assert session.is_paused
        assert session.paused_for_names == ["Player2"]

    asyncio.run(scenario())


def test_writer_closes_socket_after_forced_disconnect():
    server, sessions = setup_server(1)
    session = sessions[0]
    server.send(session.connection_id, LogLine("hello"))
    server.send(session.connection_id, ForcedDisconnect("The table was reset."))

    asyncio.run(server._writer(session))

    sent = [json.loads(raw) for raw in session.websocket.sent]
    assert [message["type"] for message in sent] == ["game_log", "force_disconnect"]
    assert sent[1]["reason"] == "The table was reset."
    assert session.websocket.closed
    assert session.websocket.close_code == 4000


def test_send_to_unknown_connection_is_dropped():
    server, _ = setup_server(1)
    server.send("ghost", LogLine("nobody home"))
    server.broadcast(LogLine("hello"))
    assert len(drain(server.sessions["c0"])) == 1


def test_client_that_stops_reading_is_dropped():
    async def scenario():
        server, sessions = setup_server(2)
        slow, other = sessions
        for idx in range(OUTBOX_LIMIT + 1):
            server.broadcast(LogLine(f"line {idx}"))
            drain(other)

        assert "c0" not in server.sessions
        assert slow.outbox.qsize() == OUTBOX_LIMIT
        await slow.close_task
        assert slow.websocket.closed
        assert slow.websocket.close_code == 1008

        assert "c1" in server.sessions
        assert not other.websocket.closed

    asyncio.run(scenario())
