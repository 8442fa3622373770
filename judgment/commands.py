from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Union

from .cards import Card, parse_card
from .errors import ValidationRejection

# Inbound messages are validated here, at the boundary. The engine only ever
# sees one of the command dataclasses below.


@dataclass(frozen=True)
class Join:
    name: str
    player_id: Optional[str] = None


@dataclass(frozen=True)
class SetReady:
    pass


@dataclass(frozen=True)
class KickFromLobby:
    player_id: str


@dataclass(frozen=True)
class StartGame:
    password: Optional[str] = None


@dataclass(frozen=True)
class StartNextRound:
    pass


@dataclass(frozen=True)
class EndGame:
    pass


@dataclass(frozen=True)
class EndSession:
    pass


@dataclass(frozen=True)
class HardReset:
    pass


@dataclass(frozen=True)
class MarkAfk:
    player_id: str


@dataclass(frozen=True)
class IAmBack:
    pass


@dataclass(frozen=True)
class SubmitBid:
    bid: int


@dataclass(frozen=True)
class PlayCard:
    card: Card


@dataclass(frozen=True)
class RearrangeHand:
    cards: List[Card]


Command = Union[
    Join,
    SetReady,
    KickFromLobby,
    StartGame,
    StartNextRound,
    EndGame,
    EndSession,
    HardReset,
    MarkAfk,
    IAmBack,
    SubmitBid,
    PlayCard,
    RearrangeHand,
]


def _bad_schema(msg: str) -> ValidationRejection:
    return ValidationRejection("BAD_SCHEMA", msg)


def _required_str(message: Mapping[str, object], field_name: str) -> str:
    value = message.get(field_name)
    if not isinstance(value, str) or not value.strip():
        raise _bad_schema(f"{field_name} required")
    return value.strip()


def _optional_str(message: Mapping[str, object], field_name: str) -> Optional[str]:
    value = message.get(field_name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise _bad_schema(f"{field_name} must be a string")
    return value.strip() or None


def _card(raw: object) -> Card:
    if not isinstance(raw, Mapping):
        raise _bad_schema("card must be an object with suit and rank")
    try:
        return parse_card(raw)
    except ValueError as exc:
        raise _bad_schema(str(exc)) from None


def parse_bid(raw: object) -> int:
    """Bids arrive as JSON integers; strings, floats and booleans are refused."""
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise _bad_schema("bid must be a whole number")
    return raw


def _parse_join(message: Mapping[str, object]) -> Join:
    return Join(name=_required_str(message, "name"), player_id=_optional_str(message, "player_id"))


def _parse_kick(message: Mapping[str, object]) -> KickFromLobby:
    return KickFromLobby(player_id=_required_str(message, "player_id"))


def _parse_start_game(message: Mapping[str, object]) -> StartGame:
    password = message.get("password")
    if password is not None and not isinstance(password, str):
        raise _bad_schema("password must be a string")
    return StartGame(password=password)


def _parse_mark_afk(message: Mapping[str, object]) -> MarkAfk:
    return MarkAfk(player_id=_required_str(message, "player_id"))


def _parse_bid(message: Mapping[str, object]) -> SubmitBid:
    if "bid" not in message:
        raise _bad_schema("bid required")
    return SubmitBid(bid=parse_bid(message["bid"]))


def _parse_play(message: Mapping[str, object]) -> PlayCard:
    return PlayCard(card=_card(message.get("card")))


def _parse_rearrange(message: Mapping[str, object]) -> RearrangeHand:
    raw = message.get("hand")
    if not isinstance(raw, list):
        raise _bad_schema("hand must be a list of cards")
    return RearrangeHand(cards=[_card(item) for item in raw])


PARSERS: Dict[str, Callable[[Mapping[str, object]], Command]] = {
    "join": _parse_join,
    "set_ready": lambda message: SetReady(),
    "kick": _parse_kick,
    "start_game": _parse_start_game,
    "start_next_round": lambda message: StartNextRound(),
    "end_game": lambda message: EndGame(),
    "end_session": lambda message: EndSession(),
    "hard_reset": lambda message: HardReset(),
    "mark_afk": _parse_mark_afk,
    "i_am_back": lambda message: IAmBack(),
    "submit_bid": _parse_bid,
    "play_card": _parse_play,
    "rearrange_hand": _parse_rearrange,
}


def parse_command(message: Mapping[str, object]) -> Command:
    msg_type = message.get("type")
    if not isinstance(msg_type, str):
        raise _bad_schema("type required")
    parser = PARSERS.get(msg_type)
    if parser is None:
        raise ValidationRejection("UNKNOWN_TYPE", "Unsupported message type")
    return parser(message)
