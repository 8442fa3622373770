from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .cards import Card, Suit
from .tricks import Play

MIN_PLAYERS = 2
DECK_SIZE = 52
NO_TRUMP_LABEL = "No Trump"
TRUMP_CYCLE = (Suit.SPADES, Suit.HEARTS, Suit.DIAMONDS, Suit.CLUBS, None)


class Phase(str, Enum):
    BIDDING = "Bidding"
    PLAYING = "Playing"
    TRICK_REVIEW = "TrickReview"
    ROUND_OVER = "RoundOver"
    GAME_OVER = "GameOver"


class PlayerStatus(str, Enum):
    ACTIVE = "Active"
    DISCONNECTED = "Disconnected"
    REMOVED = "Removed"


def trump_for_round(round_number: int) -> Optional[Suit]:
    return TRUMP_CYCLE[(round_number - 1) % len(TRUMP_CYCLE)]


def trump_label(trump: Optional[Suit]) -> str:
    return trump.value if trump is not None else NO_TRUMP_LABEL


@dataclass
class GameConfig:
    grace_period_ms: int = 60_000
    turn_time_ms: int = 90_000
    trick_review_ms: int = 10_000
    round_end_delay_ms: int = 3_000
    game_over_teardown_ms: int = 20_000
    host_password: Optional[str] = None

    @property
    def turn_timer_enabled(self) -> bool:
        return self.turn_time_ms > 0


@dataclass
class LobbyPlayer:
    player_id: str
    connection: Optional[str]
    name: str
    is_host: bool = False
    ready: bool = False
    connected: bool = True

    def to_dict(self) -> Dict[str, object]:
        return {
            "player_id": self.player_id,
            "name": self.name,
            "is_host": self.is_host,
            "ready": self.ready,
            "connected": self.connected,
        }


@dataclass
class Player:
    player_id: str
    connection: Optional[str]
    name: str
    seat: int
    is_host: bool = False
    score: int = 0
    hand: List[Card] = field(default_factory=list)
    bid: Optional[int] = None
    tricks_won: int = 0
    score_history: List[Optional[int]] = field(default_factory=list)
    status: PlayerStatus = PlayerStatus.ACTIVE
    inactive: bool = False

    @property
    def is_active(self) -> bool:
        return self.status == PlayerStatus.ACTIVE

    def reset_for_round(self) -> None:
        self.hand.clear()
        self.bid = None
        self.tricks_won = 0
        self.inactive = False


@dataclass
class CompletedTrick:
    plays: List[Play]
    winner_seat: int


@dataclass
class NextRoundInfo:
    num_cards: int
    trump_suit: Optional[Suit]
    dealer_name: Optional[str]


@dataclass
class Session:
    # Canonical table state. Only GameEngine transitions write to it.
    generation: int
    players: List[Player]
    max_rounds: int
    phase: Phase = Phase.BIDDING
    round_number: int = 0
    num_cards_to_deal: int = 0
    dealer_seat: Optional[int] = None
    trump_suit: Optional[Suit] = None
    lead_suit: Optional[Suit] = None
    current_trick: List[Play] = field(default_factory=list)
    current_winning_seat: Optional[int] = None
    trick_winner_seat: Optional[int] = None
    last_completed_trick: Optional[CompletedTrick] = None
    bidding_seat: Optional[int] = None
    acting_seat: Optional[int] = None
    is_paused: bool = False
    paused_for_names: List[str] = field(default_factory=list)
    pause_deadline: Optional[float] = None
    action_deadline: Optional[float] = None
    trick_review_deadline: Optional[float] = None
    # Set when a bid prompt was held back by a pause; sent on resume.
    bid_prompt_owed: bool = False
    next_round_info: Optional[NextRoundInfo] = None
    log_history: List[str] = field(default_factory=list)

    def active_players(self) -> List[Player]:
        return [player for player in self.players if player.is_active]

    def disconnected_players(self) -> List[Player]:
        return [player for player in self.players if player.status == PlayerStatus.DISCONNECTED]

    def player_by_id(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.player_id == player_id:
                return player
        return None

    def player_by_connection(self, connection: str) -> Optional[Player]:
        for player in self.players:
            if player.connection == connection and player.status != PlayerStatus.REMOVED:
                return player
        return None

    def host(self) -> Optional[Player]:
        for player in self.players:
            if player.is_host and player.status != PlayerStatus.REMOVED:
                return player
        return None

    def current_actor(self) -> Optional[Player]:
        if self.phase == Phase.BIDDING and self.bidding_seat is not None:
            return self.players[self.bidding_seat]
        if self.phase == Phase.PLAYING and self.acting_seat is not None:
            return self.players[self.acting_seat]
        return None
