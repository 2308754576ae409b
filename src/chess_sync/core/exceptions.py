"""
Exceptions shared by all layers.

Every rejection a client can run into carries a stable `reason` code, so the API layer (and the client mirror)
can react to the type of rejection without parsing messages.
Store-level conflicts (ConflictStaleError, ConflictFullError) never leave the service layer: they get translated
into OutOfSyncError and GameFullError.
"""

from enum import StrEnum
from typing import Optional


class ReasonCode(StrEnum):
    NOT_FOUND = "NotFound"
    GAME_NOT_ACTIVE = "GameNotActive"
    NOT_PARTICIPANT = "NotParticipant"
    NOT_YOUR_TURN = "NotYourTurn"
    OUT_OF_SYNC = "OutOfSync"
    ILLEGAL_MOVE = "IllegalMove"
    GAME_FULL = "GameFull"
    ALREADY_PARTICIPANT = "AlreadyParticipant"
    NOT_ABORTABLE = "NotAbortable"
    NO_DRAW_OFFER = "NoDrawOffer"
    INVALID_REQUEST = "InvalidRequest"


class GameError(Exception):
    """Root of everything the domain and service layers raise on purpose."""

    reason: ReasonCode = ReasonCode.INVALID_REQUEST


# --- Rules engine ---
class InvalidFENError(GameError):
    reason = ReasonCode.INVALID_REQUEST


class InvalidSquareError(GameError):
    reason = ReasonCode.INVALID_REQUEST


class IllegalMoveError(GameError):
    reason = ReasonCode.ILLEGAL_MOVE


class ReplayError(GameError):
    """A stored move could not be applied again while reconstructing a position."""


# --- Game state machine ---
class GameNotFoundError(GameError):
    reason = ReasonCode.NOT_FOUND


class GameNotActiveError(GameError):
    reason = ReasonCode.GAME_NOT_ACTIVE


class NotParticipantError(GameError):
    reason = ReasonCode.NOT_PARTICIPANT


class NotYourTurnError(GameError):
    reason = ReasonCode.NOT_YOUR_TURN


class GameFullError(GameError):
    reason = ReasonCode.GAME_FULL


class AlreadyParticipantError(GameError):
    reason = ReasonCode.ALREADY_PARTICIPANT


class NotAbortableError(GameError):
    reason = ReasonCode.NOT_ABORTABLE


class NoDrawOfferError(GameError):
    reason = ReasonCode.NO_DRAW_OFFER


class InvalidRequestError(GameError):
    reason = ReasonCode.INVALID_REQUEST


class OutOfSyncError(GameError):
    """Claimed ply does not match the authoritative one. Carries what the client needs to resynchronize."""

    reason = ReasonCode.OUT_OF_SYNC

    def __init__(
        self, message: str, authoritative_ply: int, authoritative_fen: str
    ) -> None:
        super().__init__(message)
        self.authoritative_ply = authoritative_ply
        self.authoritative_fen = authoritative_fen


# --- Persistence ---
class RepositoryError(Exception):
    """Infrastructure failure. No game specific reason code: callers retry with backoff."""


class ConflictStaleError(RepositoryError):
    """Compare-and-swap lost: the game row no longer is at the expected ply/status."""

    def __init__(self, message: str, current_ply: Optional[int] = None) -> None:
        super().__init__(message)
        self.current_ply = current_ply


class ConflictFullError(RepositoryError):
    """Compare-and-swap lost on a seat: someone else filled it first."""
