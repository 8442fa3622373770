from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple, Type

from judgment.cards import Card
from judgment.errors import InvalidBid
from judgment.events import LogLine, OutboundEvent
from judgment.game import GameEngine
from judgment.models import GameConfig, Phase, Player, Session
from judgment.tricks import legal_cards


class ManualHandle:
    def __init__(self, when: float, seq: int, callback: Callable[[], None]) -> None:
        self.when = when
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic clock: callbacks only run inside ``advance``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.handles: List[ManualHandle] = []
        self._seq = 0

    def time(self) -> float:
        return self.now

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        self._seq += 1
        handle = ManualHandle(self.now + delay, self._seq, callback)
        self.handles.append(handle)
        return handle

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self.handles if not h.cancelled and h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: (h.when, h.seq))
            self.handles.remove(handle)
            self.now = handle.when
            handle.callback()
        self.now = target

    def pending(self) -> List[ManualHandle]:
        return [h for h in self.handles if not h.cancelled]


class RecordingBroadcaster:
    def __init__(self) -> None:
        self.broadcasts: List[OutboundEvent] = []
        self.direct: List[Tuple[str, OutboundEvent]] = []

    def broadcast(self, event: OutboundEvent) -> None:
        self.broadcasts.append(event)

    def send(self, connection: str, event: OutboundEvent) -> None:
        self.direct.append((connection, event))

    def sent_to(self, connection: str, event_type: Optional[Type] = None) -> List[OutboundEvent]:
        return [
            event
            for target, event in self.direct
            if target == connection and (event_type is None or isinstance(event, event_type))
        ]

    def of_type(self, event_type: Type) -> List[OutboundEvent]:
        return [event for event in self.broadcasts if isinstance(event, event_type)]

    def logs(self) -> List[str]:
        return [event.message for event in self.of_type(LogLine)]

    def clear(self) -> None:
        self.broadcasts.clear()
        self.direct.clear()


def create_engine(
    *,
    players: int = 4,
    seed: int = 7,
    config: Optional[GameConfig] = None,
    start: bool = True,
) -> Tuple[GameEngine, RecordingBroadcaster, ManualScheduler]:
    """Engine with ``players`` joined and ready; the game is started from conn-0 (the host)."""
    scheduler = ManualScheduler()
    broadcaster = RecordingBroadcaster()
    engine = GameEngine(config or GameConfig(), broadcaster, scheduler)
    for idx in range(players):
        connection = f"conn-{idx}"
        engine.join(connection, f"Player{idx}", player_id=f"p{idx}")
        engine.set_ready(connection)
    if start:
        engine.start_game("conn-0", seed=seed)
    return engine, broadcaster, scheduler


def session_of(engine: GameEngine) -> Session:
    assert engine.session is not None
    return engine.session


def actor(engine: GameEngine) -> Player:
    current = session_of(engine).current_actor()
    assert current is not None
    return current


def bid_all(engine: GameEngine, bids: Optional[Dict[int, int]] = None) -> None:
    """Bid for every seat (0 unless given); nudges the last bid past the hook rule."""
    session = session_of(engine)
    while session.phase == Phase.BIDDING:
        bidder = actor(engine)
        wanted = (bids or {}).get(bidder.seat, 0)
        try:
            engine.submit_bid(bidder.connection, wanted)
        except InvalidBid:
            fallback = wanted + 1 if wanted < session.num_cards_to_deal else wanted - 1
            engine.submit_bid(bidder.connection, fallback)


def play_first_legal(engine: GameEngine) -> Card:
    session = session_of(engine)
    player = actor(engine)
    card = legal_cards(player.hand, session.lead_suit)[0]
    engine.play_card(player.connection, card)
    return card


def play_trick(engine: GameEngine) -> None:
    session = session_of(engine)
    while session.phase == Phase.PLAYING and session.acting_seat is not None:
        play_first_legal(engine)


def play_round(engine: GameEngine, scheduler: ManualScheduler) -> None:
    """Bid and play out the current round, then let the round-end delay elapse."""
    config = engine.config
    session = session_of(engine)
    bid_all(engine)
    for _ in range(session.num_cards_to_deal):
        play_trick(engine)
        if session.phase == Phase.TRICK_REVIEW:
            scheduler.advance(config.trick_review_ms / 1000)
    scheduler.advance(config.round_end_delay_ms / 1000)
