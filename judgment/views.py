from __future__ import annotations

from typing import Dict, List, Optional

from .cards import cards_to_dicts
from .models import Phase, Player, Session, trump_label
from .tricks import legal_cards

# Snapshot payloads. Every viewer sees the whole table except other seats'
# hands, which are reduced to a card count.


def _remaining_ms(deadline: Optional[float], now: float) -> Optional[int]:
    if deadline is None:
        return None
    return max(int((deadline - now) * 1000), 0)


def player_payload(player: Player, *, reveal_hand: bool) -> Dict[str, object]:
    payload: Dict[str, object] = {
        "player_id": player.player_id,
        "name": player.name,
        "seat": player.seat,
        "is_host": player.is_host,
        "score": player.score,
        "bid": player.bid,
        "tricks_won": player.tricks_won,
        "score_history": list(player.score_history),
        "status": player.status.value,
        "inactive": player.inactive,
        "hand_size": len(player.hand),
    }
    if reveal_hand:
        payload["hand"] = cards_to_dicts(player.hand)
    return payload


def session_payload(session: Session, now: float, viewer: Optional[str] = None) -> Dict[str, object]:
    viewer_player = session.player_by_connection(viewer) if viewer else None
    players: List[Dict[str, object]] = [
        player_payload(player, reveal_hand=viewer_player is player) for player in session.players
    ]
    last_trick = session.last_completed_trick
    next_round = session.next_round_info
    payload: Dict[str, object] = {
        "phase": session.phase.value,
        "players": players,
        "round_number": session.round_number,
        "max_rounds": session.max_rounds,
        "num_cards_to_deal": session.num_cards_to_deal,
        "dealer_seat": session.dealer_seat,
        "trump_suit": trump_label(session.trump_suit),
        "lead_suit": session.lead_suit.value if session.lead_suit else None,
        "current_trick": [play.to_dict() for play in session.current_trick],
        "current_winning_seat": session.current_winning_seat,
        "trick_winner_seat": session.trick_winner_seat,
        "last_completed_trick": (
            {
                "plays": [play.to_dict() for play in last_trick.plays],
                "winner_seat": last_trick.winner_seat,
            }
            if last_trick
            else None
        ),
        "bidding_seat": session.bidding_seat,
        "acting_seat": session.acting_seat,
        "is_paused": session.is_paused,
        "paused_for_names": list(session.paused_for_names),
        "pause_ms_remaining": _remaining_ms(session.pause_deadline, now),
        "action_ms_remaining": _remaining_ms(session.action_deadline, now),
        "trick_review_ms_remaining": _remaining_ms(session.trick_review_deadline, now),
        "next_round_info": (
            {
                "num_cards": next_round.num_cards,
                "trump_suit": trump_label(next_round.trump_suit),
                "dealer_name": next_round.dealer_name,
            }
            if next_round
            else None
        ),
        "log_history": list(session.log_history),
    }
    if viewer_player is not None:
        you: Dict[str, object] = {"seat": viewer_player.seat, "player_id": viewer_player.player_id}
        if session.phase == Phase.PLAYING and session.acting_seat == viewer_player.seat:
            you["playable"] = cards_to_dicts(legal_cards(viewer_player.hand, session.lead_suit))
        payload["you"] = you
    return payload
