from __future__ import annotations

import uuid
from typing import List, Optional

from .errors import ValidationRejection
from .models import LobbyPlayer

# Pre-game roster. The engine reads ready players from it when a game starts
# and hands the surviving players back when a session is torn down.


def new_player_id() -> str:
    return uuid.uuid4().hex[:12]


class LobbyRoster:
    def __init__(self) -> None:
        self.players: List[LobbyPlayer] = []

    def join(self, connection: str, name: str, player_id: Optional[str] = None) -> LobbyPlayer:
        display = name.strip()
        if not display:
            raise ValidationRejection("NAME_REQUIRED", "A name is required to join.")

        existing = self.by_id(player_id) if player_id else None
        if existing:
            existing.connection = connection
            existing.name = display
            existing.connected = True
            return existing

        is_host = not self.players
        player = LobbyPlayer(
            player_id=player_id or new_player_id(),
            connection=connection,
            name=display,
            is_host=is_host,
            ready=is_host,
        )
        self.players.append(player)
        return player

    def by_id(self, player_id: str) -> Optional[LobbyPlayer]:
        for player in self.players:
            if player.player_id == player_id:
                return player
        return None

    def by_connection(self, connection: str) -> Optional[LobbyPlayer]:
        for player in self.players:
            if player.connection == connection:
                return player
        return None

    def host(self) -> Optional[LobbyPlayer]:
        for player in self.players:
            if player.is_host:
                return player
        return None

    def require_host(self, connection: str) -> LobbyPlayer:
        player = self.by_connection(connection)
        if player is None or not player.is_host:
            raise ValidationRejection("NOT_HOST", "Only the host can do that.")
        return player

    def set_ready(self, connection: str) -> bool:
        player = self.by_connection(connection)
        if player is None:
            raise ValidationRejection("NOT_JOINED", "Join the lobby first.")
        if player.ready:
            return False
        player.ready = True
        return True

    def kick(self, connection: str, player_id: str) -> LobbyPlayer:
        host = self.require_host(connection)
        target = self.by_id(player_id)
        if target is None:
            raise ValidationRejection("UNKNOWN_PLAYER", "No such player in the lobby.")
        if target is host:
            raise ValidationRejection("CANNOT_KICK_SELF", "The host cannot kick themselves.")
        self.players.remove(target)
        return target

    def mark_disconnected(self, connection: str) -> Optional[LobbyPlayer]:
        player = self.by_connection(connection)
        if player is not None:
            player.connected = False
        return player

    def ready_players(self) -> List[LobbyPlayer]:
        return [player for player in self.players if player.ready and player.connected]

    def replace(self, players: List[LobbyPlayer]) -> None:
        self.players = list(players)

    def clear(self) -> None:
        self.players = []
