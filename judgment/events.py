from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Dict, List, Optional, Protocol

from .models import LobbyPlayer, Session
from .views import session_payload

# Outbound events. ``type`` is the wire name; ``to_payload`` renders the body
# for one viewer (only snapshots care who is looking).


@dataclass(frozen=True)
class StateSnapshot:
    type: ClassVar[str] = "game_state"
    session: Session
    now: float

    def to_payload(self, viewer: Optional[str] = None) -> Dict[str, object]:
        return {"state": session_payload(self.session, self.now, viewer)}


@dataclass(frozen=True)
class LobbyUpdate:
    type: ClassVar[str] = "lobby"
    players: List[LobbyPlayer]

    def to_payload(self, viewer: Optional[str] = None) -> Dict[str, object]:
        return {"players": [player.to_dict() for player in self.players]}


@dataclass(frozen=True)
class JoinAccepted:
    type: ClassVar[str] = "join_success"
    player_id: str
    lobby: List[LobbyPlayer] = field(default_factory=list)

    def to_payload(self, viewer: Optional[str] = None) -> Dict[str, object]:
        return {"player_id": self.player_id, "lobby": [player.to_dict() for player in self.lobby]}


@dataclass(frozen=True)
class BidPrompt:
    type: ClassVar[str] = "bid_prompt"
    max_bid: int

    def to_payload(self, viewer: Optional[str] = None) -> Dict[str, object]:
        return {"max_bid": self.max_bid}


@dataclass(frozen=True)
class InvalidBidNotice:
    type: ClassVar[str] = "invalid_bid"
    message: str

    def to_payload(self, viewer: Optional[str] = None) -> Dict[str, object]:
        return {"message": self.message}


@dataclass(frozen=True)
class TrickWon:
    type: ClassVar[str] = "trick_won"
    winner_name: str
    seat: int

    def to_payload(self, viewer: Optional[str] = None) -> Dict[str, object]:
        return {"winner_name": self.winner_name, "seat": self.seat}


@dataclass(frozen=True)
class MarkedAfk:
    type: ClassVar[str] = "marked_afk"
    message: str

    def to_payload(self, viewer: Optional[str] = None) -> Dict[str, object]:
        return {"message": self.message}


@dataclass(frozen=True)
class FinalGameOver:
    type: ClassVar[str] = "final_game_over"
    session: Session
    now: float
    winners: List[Dict[str, object]]

    def to_payload(self, viewer: Optional[str] = None) -> Dict[str, object]:
        return {"state": session_payload(self.session, self.now, viewer), "winners": list(self.winners)}


@dataclass(frozen=True)
class Announcement:
    type: ClassVar[str] = "announce"
    message: str

    def to_payload(self, viewer: Optional[str] = None) -> Dict[str, object]:
        return {"message": self.message}


@dataclass(frozen=True)
class ForcedDisconnect:
    type: ClassVar[str] = "force_disconnect"
    reason: str

    def to_payload(self, viewer: Optional[str] = None) -> Dict[str, object]:
        return {"reason": self.reason}


@dataclass(frozen=True)
class LogLine:
    type: ClassVar[str] = "game_log"
    message: str

    def to_payload(self, viewer: Optional[str] = None) -> Dict[str, object]:
        return {"message": self.message}


@dataclass(frozen=True)
class Rejection:
    type: ClassVar[str] = "error"
    code: str
    msg: str

    def to_payload(self, viewer: Optional[str] = None) -> Dict[str, object]:
        return {"code": self.code, "msg": self.msg}


class OutboundEvent(Protocol):
    type: ClassVar[str]

    def to_payload(self, viewer: Optional[str] = None) -> Dict[str, object]: ...


class Broadcaster(Protocol):
    """Delivery side of the table. Implemented by the host, never by the core."""

    def broadcast(self, event: OutboundEvent) -> None: ...

    def send(self, connection: str, event: OutboundEvent) -> None: ...
