from __future__ import annotations


class JudgmentError(Exception):
    """Base class for errors raised by the game core."""


class ValidationRejection(JudgmentError):
    """An inbound action was refused; nothing was mutated.

    The host reports it to the sender only.
    """

    def __init__(self, code: str, msg: str) -> None:
        super().__init__(msg)
        self.code = code
        self.msg = msg


class InvalidBid(ValidationRejection):
    pass
