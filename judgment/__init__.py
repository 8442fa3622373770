"""Judgment table core: cards, tricks and the session engine, free of networking."""

from .cards import Card, RANKS, RANK_VALUES, SUITS, Suit, build_deck, deal, parse_card
from .commands import Command, parse_command
from .errors import InvalidBid, JudgmentError, ValidationRejection
from .events import Broadcaster
from .game import GameEngine, final_winners, round_score
from .models import GameConfig, Phase, Player, PlayerStatus, Session
from .scheduler import Scheduler, TaskBoard, TaskPurpose
from .tricks import Play, evaluate, legal_cards

__all__ = [
    "Card",
    "RANKS",
    "RANK_VALUES",
    "SUITS",
    "Suit",
    "build_deck",
    "deal",
    "parse_card",
    "Command",
    "parse_command",
    "InvalidBid",
    "JudgmentError",
    "ValidationRejection",
    "Broadcaster",
    "GameEngine",
    "final_winners",
    "round_score",
    "GameConfig",
    "Phase",
    "Player",
    "PlayerStatus",
    "Session",
    "Scheduler",
    "TaskBoard",
    "TaskPurpose",
    "Play",
    "evaluate",
    "legal_cards",
]
