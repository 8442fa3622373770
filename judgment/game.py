from __future__ import annotations

import logging
import random
from collections import Counter
from typing import Callable, Dict, List, Optional, Sequence

from . import commands as cmd
from .cards import Card, build_deck, deal
from .errors import InvalidBid, ValidationRejection
from .events import (
    Announcement,
    BidPrompt,
    Broadcaster,
    FinalGameOver,
    ForcedDisconnect,
    JoinAccepted,
    LobbyUpdate,
    LogLine,
    MarkedAfk,
    StateSnapshot,
    TrickWon,
)
from .lobby import LobbyRoster
from .models import (
    DECK_SIZE,
    MIN_PLAYERS,
    CompletedTrick,
    GameConfig,
    LobbyPlayer,
    NextRoundInfo,
    Phase,
    Player,
    PlayerStatus,
    Session,
    trump_for_round,
    trump_label,
)
from .scheduler import DeferredTask, Scheduler, TaskBoard, TaskPurpose
from .tricks import Play, evaluate, legal_cards

LOGGER = logging.getLogger("judgment_engine")

# GameEngine owns the lobby roster and the single live Session. No networking
# lives here: the host feeds in commands and disconnects, the engine answers
# through the Broadcaster and schedules its own follow-ups on the TaskBoard.


class GameEngine:
    """Judgment (Oh Hell) engine for a single table."""

    def __init__(
        self,
        config: GameConfig,
        broadcaster: Broadcaster,
        scheduler: Scheduler,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config
        self.broadcaster = broadcaster
        self.tasks = TaskBoard(scheduler)
        self.rng = rng or random.Random()
        self.lobby = LobbyRoster()
        self.session: Optional[Session] = None
        self.generation = 0

    def handle(self, connection: str, command: cmd.Command) -> None:
        if isinstance(command, cmd.Join):
            self.join(connection, command.name, command.player_id)
        elif isinstance(command, cmd.SetReady):
            self.set_ready(connection)
        elif isinstance(command, cmd.KickFromLobby):
            self.kick_from_lobby(connection, command.player_id)
        elif isinstance(command, cmd.StartGame):
            self.start_game(connection, command.password)
        elif isinstance(command, cmd.StartNextRound):
            self.start_next_round(connection)
        elif isinstance(command, cmd.EndGame):
            self.end_game(connection)
        elif isinstance(command, cmd.EndSession):
            self.end_session(connection)
        elif isinstance(command, cmd.HardReset):
            self.hard_reset(connection)
        elif isinstance(command, cmd.MarkAfk):
            self.mark_afk(connection, command.player_id)
        elif isinstance(command, cmd.IAmBack):
            self.i_am_back(connection)
        elif isinstance(command, cmd.SubmitBid):
            self.submit_bid(connection, command.bid)
        elif isinstance(command, cmd.PlayCard):
            self.play_card(connection, command.card)
        elif isinstance(command, cmd.RearrangeHand):
            self.rearrange_hand(connection, command.cards)
        else:
            raise ValidationRejection("UNKNOWN_TYPE", f"Unsupported command {command!r}")

    # Lobby -----------------------------------------------------------

    def join(self, connection: str, name: str, player_id: Optional[str] = None) -> None:
        if self.session is not None:
            self._join_running_session(connection, name, player_id)
            return
        player = self.lobby.join(connection, name, player_id)
        LOGGER.info("%s joined the lobby as %s", player.name, player.player_id)
        self.broadcaster.send(connection, JoinAccepted(player.player_id, list(self.lobby.players)))
        self._publish_lobby()

    def set_ready(self, connection: str) -> None:
        if self.lobby.set_ready(connection):
            self._publish_lobby()

    def kick_from_lobby(self, connection: str, player_id: str) -> None:
        if self.session is not None:
            raise ValidationRejection("GAME_IN_PROGRESS", "Game is already in progress.")
        target = self.lobby.kick(connection, player_id)
        LOGGER.info("Host kicked %s from the lobby", target.name)
        if target.connection:
            self.broadcaster.send(target.connection, ForcedDisconnect("You were removed from the lobby by the host."))
        self._publish_lobby()

    def start_game(self, connection: str, password: Optional[str] = None, seed: Optional[int] = None) -> Session:
        if self.session is not None:
            raise ValidationRejection("GAME_IN_PROGRESS", "Game is already in progress.")
        self.lobby.require_host(connection)
        if self.config.host_password and password != self.config.host_password:
            raise ValidationRejection("BAD_PASSWORD", "Incorrect host password.")
        ready = self.lobby.ready_players()
        if len(ready) < MIN_PLAYERS:
            raise ValidationRejection("NOT_ENOUGH_PLAYERS", "Not enough ready players to start the game.")
        if len(ready) > DECK_SIZE:
            raise ValidationRejection("TOO_MANY_PLAYERS", "Too many players for one deck.")

        if seed is not None:
            self.rng = random.Random(seed)
        self.generation += 1
        players = [
            Player(
                player_id=entry.player_id,
                connection=entry.connection,
                name=entry.name,
                seat=idx,
                is_host=entry.is_host,
            )
            for idx, entry in enumerate(ready)
        ]
        self.session = Session(
            generation=self.generation,
            players=players,
            max_rounds=DECK_SIZE // len(players),
        )
        LOGGER.info(
            "Game %s started with %s players (%s rounds)",
            self.generation,
            len(players),
            self.session.max_rounds,
        )
        self._start_round()
        return self.session

    def end_game(self, connection: str) -> None:
        session = self._require_session()
        host = self._require_session_host(session, connection)
        self._log(f"{host.name} ended the game.")
        self._teardown("ended by host")

    def end_session(self, connection: str) -> None:
        if self.session is not None:
            self._require_session_host(self.session, connection)
            self._teardown("session ended by host")
        host = self.lobby.require_host(connection)
        for player in self.lobby.players:
            if player is not host and player.connection and player.connected:
                self.broadcaster.send(player.connection, ForcedDisconnect("The host ended the session."))
        host.ready = True
        self.lobby.replace([host])
        LOGGER.info("Session ended by %s; lobby cleared", host.name)
        self._publish_lobby()

    def hard_reset(self, connection: str) -> None:
        if self.session is not None:
            self._require_session_host(self.session, connection)
        else:
            self.lobby.require_host(connection)
        targets = {player.connection for player in self.lobby.players if player.connection}
        if self.session is not None:
            targets.update(
                player.connection
                for player in self.session.players
                if player.connection and player.status != PlayerStatus.REMOVED
            )
        self.tasks.cancel_all()
        self.session = None
        self.lobby.clear()
        LOGGER.warning("Hard reset requested; dropping %s connections", len(targets))
        for target in sorted(targets):
            self.broadcaster.send(target, ForcedDisconnect("The table was reset."))

    # Bidding ---------------------------------------------------------

    def submit_bid(self, connection: str, bid: int) -> None:
        session = self._require_session()
        if session.phase != Phase.BIDDING:
            raise ValidationRejection("WRONG_PHASE", "Bidding is not open.")
        self._require_unpaused(session)
        player = self._require_actor(session, connection)

        if isinstance(bid, bool) or not isinstance(bid, int):
            raise InvalidBid("BAD_BID", "Bid must be a whole number.")
        max_bid = session.num_cards_to_deal
        if bid < 0 or bid > max_bid:
            raise InvalidBid("BID_OUT_OF_RANGE", f"Bid must be between 0 and {max_bid}.")
        if self._is_last_bidder(session, player):
            bids_so_far = sum(p.bid for p in session.active_players() if p.bid is not None)
            if bids_so_far + bid == max_bid:
                raise InvalidBid("HOOK_RULE", f"Total bid cannot be {max_bid}. Please bid again.")

        self._disarm_turn(session)
        player.inactive = False
        player.bid = bid
        self._log(f"{player.name} bids {bid}.")
        self._advance_bidding(session, player.seat)
        self._publish_state()

    def _is_last_bidder(self, session: Session, player: Player) -> bool:
        waiting = [p for p in session.active_players() if p.bid is None]
        return waiting == [player]

    def _advance_bidding(self, session: Session, from_seat: int) -> None:
        next_seat = self._next_active_seat(session, from_seat, lambda p: p.bid is None)
        if next_seat is None:
            self._begin_play(session)
            return
        session.bidding_seat = next_seat
        self._arm_turn_timer(session)
        self._prompt_bidder(session)

    def _begin_play(self, session: Session) -> None:
        session.phase = Phase.PLAYING
        session.bidding_seat = None
        session.acting_seat = self._next_active_seat(session, session.dealer_seat)
        leader = session.current_actor()
        self._log(f"Bidding complete. {leader.name if leader else 'Nobody'} starts.")
        self._arm_turn_timer(session)

    def _prompt_bidder(self, session: Session) -> None:
        if session.phase != Phase.BIDDING:
            return
        if session.is_paused:
            session.bid_prompt_owed = True
            return
        session.bid_prompt_owed = False
        bidder = session.current_actor()
        if bidder and bidder.connection:
            self.broadcaster.send(bidder.connection, BidPrompt(max_bid=session.num_cards_to_deal))

    # Playing ---------------------------------------------------------

    def play_card(self, connection: str, card: Card) -> None:
        session = self._require_session()
        if session.phase != Phase.PLAYING or session.acting_seat is None:
            raise ValidationRejection("WRONG_PHASE", "Cards cannot be played right now.")
        self._require_unpaused(session)
        player = self._require_actor(session, connection)

        if card not in player.hand:
            raise ValidationRejection("CARD_NOT_IN_HAND", "That card is not in your hand.")
        if card not in legal_cards(player.hand, session.lead_suit):
            assert session.lead_suit is not None
            raise ValidationRejection("MUST_FOLLOW_SUIT", f"You must play a {session.lead_suit.value} card.")

        self._disarm_turn(session)
        player.inactive = False
        if session.lead_suit is None:
            session.lead_suit = card.suit
        player.hand.remove(card)
        session.current_trick.append(Play(seat=player.seat, card=card))
        session.current_winning_seat = evaluate(session.trump_suit, session.current_trick).seat
        self._log(f"{player.name} played the {card.label}.")

        if self._trick_complete(session):
            self._resolve_trick(session)
        else:
            played = {play.seat for play in session.current_trick}
            session.acting_seat = self._next_active_seat(session, player.seat, lambda p: p.seat not in played)
            self._arm_turn_timer(session)
        self._publish_state()

    def rearrange_hand(self, connection: str, cards: Sequence[Card]) -> None:
        session = self._require_session()
        player = session.player_by_connection(connection)
        if player is None:
            raise ValidationRejection("NOT_SEATED", "You are not seated at this table.")
        if len(cards) != len(player.hand):
            raise ValidationRejection("HAND_MISMATCH", "Hand size does not match.")
        if Counter(cards) != Counter(player.hand):
            raise ValidationRejection("HAND_MISMATCH", "A rearranged hand must hold the same cards.")
        player.hand = list(cards)
        self._publish_state()

    def _trick_complete(self, session: Session) -> bool:
        if not session.current_trick:
            return False
        played = {play.seat for play in session.current_trick}
        return all(player.seat in played for player in session.active_players())

    def _resolve_trick(self, session: Session) -> None:
        self._disarm_turn(session)
        winning = evaluate(session.trump_suit, session.current_trick)
        winner = session.players[winning.seat]
        winner.tricks_won += 1
        session.current_winning_seat = winning.seat
        session.last_completed_trick = CompletedTrick(plays=list(session.current_trick), winner_seat=winning.seat)
        session.acting_seat = None
        self.broadcaster.broadcast(TrickWon(winner_name=winner.name, seat=winner.seat))
        self._log(f"{winner.name} wins the trick.")

        if all(not player.hand for player in session.active_players()):
            self.tasks.arm(
                TaskPurpose.ROUND_END,
                self.config.round_end_delay_ms,
                self._on_round_end,
                generation=session.generation,
                target=(session.round_number,),
            )
            return

        session.phase = Phase.TRICK_REVIEW
        session.trick_winner_seat = winning.seat
        self._arm_trick_review(session)

    def _arm_trick_review(self, session: Session) -> None:
        if session.is_paused:
            return
        task = self.tasks.arm(
            TaskPurpose.TRICK_REVIEW,
            self.config.trick_review_ms,
            self._on_trick_review_elapsed,
            generation=session.generation,
            target=(session.round_number,),
        )
        session.trick_review_deadline = task.deadline

    def _disarm_trick_review(self, session: Session) -> None:
        self.tasks.cancel(TaskPurpose.TRICK_REVIEW)
        session.trick_review_deadline = None

    def _on_trick_review_elapsed(self, task: DeferredTask) -> None:
        session = self._live_session(task)
        if session is None:
            return
        if session.phase != Phase.TRICK_REVIEW or session.round_number != task.target[0] or session.is_paused:
            LOGGER.debug("Trick review task no longer applies (phase=%s)", session.phase)
            return
        winner_seat = session.trick_winner_seat
        session.trick_review_deadline = None
        session.phase = Phase.PLAYING
        session.current_trick = []
        session.lead_suit = None
        session.current_winning_seat = None
        session.trick_winner_seat = None
        if winner_seat is not None and session.players[winner_seat].is_active:
            session.acting_seat = winner_seat
        else:
            session.acting_seat = self._next_active_seat(session, winner_seat)
        self._arm_turn_timer(session)
        self._publish_state()

    # Round lifecycle -------------------------------------------------

    def start_next_round(self, connection: str) -> None:
        session = self._require_session()
        self._require_session_host(session, connection)
        if session.phase != Phase.ROUND_OVER:
            raise ValidationRejection("WRONG_PHASE", "The round is not over yet.")
        self._require_unpaused(session)
        self._start_round()

    def _start_round(self) -> None:
        session = self.session
        assert session is not None
        session.round_number += 1
        session.num_cards_to_deal = session.max_rounds - (session.round_number - 1)
        if session.num_cards_to_deal < 1:
            self._game_over(session)
            return

        session.dealer_seat = self._next_active_seat(session, session.dealer_seat)
        session.trump_suit = trump_for_round(session.round_number)
        deck = build_deck(self.rng)
        for player in session.players:
            player.reset_for_round()
        for player in session.active_players():
            player.hand = deal(deck, session.num_cards_to_deal)

        session.phase = Phase.BIDDING
        session.current_trick = []
        session.lead_suit = None
        session.current_winning_seat = None
        session.trick_winner_seat = None
        session.trick_review_deadline = None
        session.last_completed_trick = None
        session.next_round_info = None
        session.acting_seat = None
        session.bidding_seat = self._next_active_seat(session, session.dealer_seat)

        self._log(
            f"Round {session.round_number} begins. Cards: {session.num_cards_to_deal}. "
            f"Trump: {trump_label(session.trump_suit)}."
        )
        self._arm_turn_timer(session)
        self._publish_state()
        self._prompt_bidder(session)

    def _on_round_end(self, task: DeferredTask) -> None:
        session = self._live_session(task)
        if session is None:
            return
        if session.phase != Phase.PLAYING or session.round_number != task.target[0] or session.acting_seat is not None:
            LOGGER.debug("Round end task no longer applies (phase=%s)", session.phase)
            return

        for player in session.players:
            if not player.is_active:
                player.score_history.append(None)
                continue
            delta = round_score(player.bid or 0, player.tricks_won)
            player.score += delta
            player.score_history.append(delta)
        self._log(f"Round {session.round_number} has ended. Scores calculated.")

        if session.num_cards_to_deal <= 1:
            self._game_over(session)
            return
        session.phase = Phase.ROUND_OVER
        session.next_round_info = self._preview_next_round(session)
        self._publish_state()

    def _preview_next_round(self, session: Session) -> NextRoundInfo:
        next_number = session.round_number + 1
        num_cards = session.max_rounds - (next_number - 1)
        dealer_seat = self._next_active_seat(session, session.dealer_seat)
        return NextRoundInfo(
            num_cards=num_cards,
            trump_suit=trump_for_round(next_number) if num_cards > 0 else None,
            dealer_name=session.players[dealer_seat].name if dealer_seat is not None else None,
        )

    def _game_over(self, session: Session) -> None:
        self.tasks.cancel_all()
        session.phase = Phase.GAME_OVER
        session.bidding_seat = None
        session.acting_seat = None
        session.action_deadline = None
        session.trick_review_deadline = None
        session.bid_prompt_owed = False
        session.is_paused = False
        session.paused_for_names = []
        session.pause_deadline = None

        winners = final_winners(session.players)
        self._log("GAME OVER!")
        LOGGER.info("Game %s over; winners=%s", session.generation, [w["name"] for w in winners])
        self.broadcaster.broadcast(FinalGameOver(session=session, now=self.tasks.now(), winners=winners))
        self.tasks.arm(
            TaskPurpose.TEARDOWN,
            self.config.game_over_teardown_ms,
            self._on_teardown_due,
            generation=session.generation,
        )
        self._publish_state()

    def _on_teardown_due(self, task: DeferredTask) -> None:
        session = self._live_session(task)
        if session is None or session.phase != Phase.GAME_OVER:
            return
        self._teardown("game over")

    def _teardown(self, reason: str) -> None:
        session = self.session
        if session is None:
            return
        self.tasks.cancel_all()
        survivors = [
            LobbyPlayer(
                player_id=player.player_id,
                connection=player.connection,
                name=player.name,
                is_host=player.is_host,
                ready=True,
                connected=player.is_active,
            )
            for player in session.players
            if player.status != PlayerStatus.REMOVED
        ]
        if survivors and not any(player.is_host for player in survivors):
            heir = next((player for player in survivors if player.connected), survivors[0])
            heir.is_host = True
        seated = {player.player_id for player in session.players}
        unseated = [player for player in self.lobby.players if player.player_id not in seated]
        for player in unseated:
            player.is_host = False
        self.lobby.replace(survivors + unseated)
        self.session = None
        LOGGER.info("Session %s torn down (%s); %s players back in lobby", session.generation, reason, len(survivors))
        self._publish_lobby()

    # Turn timer ------------------------------------------------------

    def _arm_turn_timer(self, session: Session) -> None:
        self._disarm_turn(session)
        if session.is_paused or not self.config.turn_timer_enabled:
            return
        actor = session.current_actor()
        if actor is None:
            return
        task = self.tasks.arm(
            TaskPurpose.TURN,
            self.config.turn_time_ms,
            self._on_turn_expired,
            generation=session.generation,
            target=(session.phase, session.round_number, actor.seat),
        )
        session.action_deadline = task.deadline

    def _disarm_turn(self, session: Session) -> None:
        self.tasks.cancel(TaskPurpose.TURN)
        session.action_deadline = None

    def _on_turn_expired(self, task: DeferredTask) -> None:
        session = self._live_session(task)
        if session is None:
            return
        actor = session.current_actor()
        phase, round_number, seat = task.target
        if (
            session.is_paused
            or actor is None
            or session.phase != phase
            or session.round_number != round_number
            or actor.seat != seat
        ):
            LOGGER.debug("Turn deadline for seat %s no longer applies", seat)
            return
        session.action_deadline = None
        actor.inactive = True
        self._log(f"Player {actor.name} is inactive. The host can now remove them.")
        self._publish_state()

    # Disconnection and reconnection ----------------------------------

    def disconnect(self, connection: str) -> None:
        if self.session is None:
            if self.lobby.mark_disconnected(connection):
                self._publish_lobby()
            return
        self.lobby.mark_disconnected(connection)
        player = self.session.player_by_connection(connection)
        if player is None or not player.is_active:
            return
        self._suspend_player(self.session, player, afk=False)

    def mark_afk(self, connection: str, player_id: str) -> None:
        session = self._require_session()
        host = self._require_session_host(session, connection)
        if session.phase == Phase.GAME_OVER:
            raise ValidationRejection("WRONG_PHASE", "The game is already over.")
        target = session.player_by_id(player_id)
        if target is None or not target.is_active:
            raise ValidationRejection("UNKNOWN_PLAYER", "That player is not active.")
        if target is host:
            raise ValidationRejection("CANNOT_MARK_SELF", "The host cannot mark themselves AFK.")
        if self.config.turn_timer_enabled and not target.inactive:
            raise ValidationRejection("NOT_INACTIVE", f"{target.name} has not run out of time yet.")
        if target.connection:
            self.broadcaster.send(
                target.connection,
                MarkedAfk("The host marked you as away. Tell the table you are back to keep your seat."),
            )
        self._suspend_player(session, target, afk=True)

    def i_am_back(self, connection: str) -> None:
        session = self._require_session()
        player = session.player_by_connection(connection)
        if player is None or player.status != PlayerStatus.DISCONNECTED:
            raise ValidationRejection("NOT_AWAY", "You are not marked as away.")
        self._rejoin(session, player, connection)

    def _join_running_session(self, connection: str, name: str, player_id: Optional[str]) -> None:
        session = self.session
        assert session is not None
        waiting = session.disconnected_players()
        player = None
        if player_id:
            player = next((p for p in waiting if p.player_id == player_id), None)
        if player is None:
            wanted = name.strip().casefold()
            player = next((p for p in waiting if p.name.casefold() == wanted), None)
        if player is None:
            self.broadcaster.send(connection, Announcement("Game is already in progress."))
            return
        self._rejoin(session, player, connection)

    def _suspend_player(self, session: Session, player: Player, *, afk: bool) -> None:
        player.status = PlayerStatus.DISCONNECTED
        self._ensure_active_host(session)
        if session.phase == Phase.GAME_OVER:
            self._publish_state()
            return
        self.tasks.arm(
            TaskPurpose.GRACE,
            self.config.grace_period_ms,
            self._on_grace_expired,
            generation=session.generation,
            key=player.player_id,
            target=(afk,),
        )
        self._disarm_trick_review(session)
        self._disarm_turn(session)
        if afk:
            self._log(f"Player {player.name} was marked away by the host. The game is paused.")
        else:
            self._log(f"Player {player.name} has disconnected. The game is paused.")
        self._refresh_pause(session)
        self._publish_state()

    def _rejoin(self, session: Session, player: Player, connection: str) -> None:
        player.status = PlayerStatus.ACTIVE
        player.connection = connection
        player.inactive = False
        self.tasks.cancel(TaskPurpose.GRACE, player.player_id)
        lobby_entry = self.lobby.by_id(player.player_id)
        if lobby_entry:
            lobby_entry.connection = connection
            lobby_entry.connected = True
        self._ensure_active_host(session)
        self.broadcaster.send(connection, JoinAccepted(player.player_id, list(self.lobby.players)))
        self._log(f"Player {player.name} has reconnected.")
        self._refresh_pause(session, returning=player)
        self._publish_state()

    def _on_grace_expired(self, task: DeferredTask) -> None:
        session = self._live_session(task)
        if session is None:
            return
        player = session.player_by_id(task.key or "")
        if player is None or player.status != PlayerStatus.DISCONNECTED:
            LOGGER.debug("Grace task for %s no longer applies", task.key)
            return
        afk = bool(task.target and task.target[0])
        self.remove_player(player, reason="inactivity" if afk else "reconnect")

    def remove_player(self, player: Player, reason: str = "reconnect") -> None:
        session = self._require_session()
        was_actor = session.current_actor() is player
        player.status = PlayerStatus.REMOVED
        player.inactive = False
        self.tasks.cancel(TaskPurpose.GRACE, player.player_id)
        if reason == "inactivity":
            self._log(f"Player {player.name} was removed by the host for inactivity.")
        else:
            self._log(f"Player {player.name} failed to reconnect and has been removed.")

        player.is_host = False
        self._ensure_active_host(session)

        if len(session.active_players()) < MIN_PLAYERS:
            self._log("Not enough players to continue. Returning to lobby.")
            self._teardown("not enough players")
            return

        self._withdraw_from_trick(session, player)
        player.hand.clear()
        if was_actor:
            self._advance_past(session, player)
        self._refresh_pause(session)
        self._publish_state()

    def _withdraw_from_trick(self, session: Session, player: Player) -> None:
        if session.phase != Phase.PLAYING or session.acting_seat is None:
            return
        remaining = [play for play in session.current_trick if play.seat != player.seat]
        if len(remaining) == len(session.current_trick):
            return
        session.current_trick = remaining
        if remaining:
            session.current_winning_seat = evaluate(session.trump_suit, remaining).seat
        else:
            session.lead_suit = None
            session.current_winning_seat = None

    def _advance_past(self, session: Session, player: Player) -> None:
        if session.phase == Phase.BIDDING:
            self._advance_bidding(session, player.seat)
        elif session.phase == Phase.PLAYING:
            if self._trick_complete(session):
                self._resolve_trick(session)
                return
            played = {play.seat for play in session.current_trick}
            session.acting_seat = self._next_active_seat(session, player.seat, lambda p: p.seat not in played)
            self._arm_turn_timer(session)

    def _refresh_pause(self, session: Session, returning: Optional[Player] = None) -> None:
        waiting = session.disconnected_players()
        if waiting and session.phase != Phase.GAME_OVER:
            session.is_paused = True
            session.paused_for_names = [player.name for player in waiting]
            deadlines = [task.deadline for task in self.tasks.pending(TaskPurpose.GRACE)]
            session.pause_deadline = min(deadlines) if deadlines else None
            return
        was_paused = session.is_paused
        session.is_paused = False
        session.paused_for_names = []
        session.pause_deadline = None
        if was_paused:
            self._resume_phase(session, returning)

    def _resume_phase(self, session: Session, returning: Optional[Player] = None) -> None:
        if session.phase in (Phase.BIDDING, Phase.PLAYING):
            self._arm_turn_timer(session)
            # Seats that were not bidding already hold their last prompt.
            if session.bid_prompt_owed or (returning is not None and session.current_actor() is returning):
                self._prompt_bidder(session)
        elif session.phase == Phase.TRICK_REVIEW:
            self._arm_trick_review(session)

    def _ensure_active_host(self, session: Session) -> None:
        """Keep exactly one Active host while any Active seat remains."""
        active = session.active_players()
        if not active or any(player.is_host for player in active):
            return
        heir = active[0]
        for player in session.players:
            player.is_host = player is heir
        for entry in self.lobby.players:
            entry.is_host = entry.player_id == heir.player_id
        self._log(f"Host privileges transferred to {heir.name}.")

    # Helpers ---------------------------------------------------------

    def _next_active_seat(
        self,
        session: Session,
        start: Optional[int],
        predicate: Optional[Callable[[Player], bool]] = None,
    ) -> Optional[int]:
        # Walks clockwise from the seat after ``start``; ``None`` starts at seat 0.
        count = len(session.players)
        first = 0 if start is None else start + 1
        for step in range(count):
            player = session.players[(first + step) % count]
            if player.is_active and (predicate is None or predicate(player)):
                return player.seat
        return None

    def _require_session(self) -> Session:
        if self.session is None:
            raise ValidationRejection("NO_GAME", "No game is in progress.")
        return self.session

    def _require_session_host(self, session: Session, connection: str) -> Player:
        player = session.player_by_connection(connection)
        if player is None or not player.is_host or not player.is_active:
            raise ValidationRejection("NOT_HOST", "Only the host can do that.")
        return player

    def _require_actor(self, session: Session, connection: str) -> Player:
        actor = session.current_actor()
        if actor is None or actor.connection != connection or not actor.is_active:
            raise ValidationRejection("NOT_YOUR_TURN", "It is not your turn.")
        return actor

    def _require_unpaused(self, session: Session) -> None:
        if session.is_paused:
            raise ValidationRejection("PAUSED", "The game is paused.")

    def _live_session(self, task: DeferredTask) -> Optional[Session]:
        session = self.session
        if session is None or session.generation != task.generation:
            LOGGER.debug("Ignoring stale %s task from game %s", task.purpose.value, task.generation)
            return None
        return session

    def _log(self, message: str) -> None:
        if self.session is not None:
            self.session.log_history.append(message)
        LOGGER.info("%s", message)
        self.broadcaster.broadcast(LogLine(message))

    def _publish_state(self) -> None:
        if self.session is not None:
            self.broadcaster.broadcast(StateSnapshot(session=self.session, now=self.tasks.now()))

    def _publish_lobby(self) -> None:
        self.broadcaster.broadcast(LobbyUpdate(list(self.lobby.players)))


def round_score(bid: int, tricks_won: int) -> int:
    return 10 + bid if tricks_won == bid else -bid


def final_winners(players: Sequence[Player]) -> List[Dict[str, object]]:
    eligible = [player for player in players if player.status != PlayerStatus.REMOVED]
    if not eligible:
        return []
    best = max(player.score for player in eligible)
    return [
        {"player_id": player.player_id, "name": player.name, "score": player.score}
        for player in eligible
        if player.score == best
    ]
