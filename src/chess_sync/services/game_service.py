"""
Orchestration between the API layer, the rules engine and the game store: the authoritative game state machine.

Every call starts from what is stored. Nothing about a game is remembered in between calls, so any number of
service instances can run side by side. Races between them are settled by the store's conditional writes:

* moves are written only if the game is still active at the ply observed while validating
* terminal transitions (resign, timeout, draw agreement, abort) are written only if the status did not change
* a seat is filled only if it is still empty

The loser of a race gets OutOfSyncError / GameFullError, never a storage error.
"""

import logging
import random
from datetime import datetime
from typing import Callable, Optional
from uuid import UUID, uuid4

from chess_sync.chess.fen import STARTING_FEN
from chess_sync.chess.moves import Move
from chess_sync.chess.notation import build_transcript
from chess_sync.chess.pieces import FEN_TO_PIECE, PieceType
from chess_sync.chess.pieces import Color as PieceColor
from chess_sync.chess.position import Position
from chess_sync.chess.replay import ReconstructionResult, reconstruct
from chess_sync.chess.rules import (
    apply_move,
    legal_moves_from,
    result_for_termination,
    terminal_status,
)
from chess_sync.core.exceptions import (
    AlreadyParticipantError,
    ConflictFullError,
    ConflictStaleError,
    GameFullError,
    GameNotActiveError,
    GameNotFoundError,
    IllegalMoveError,
    NoDrawOfferError,
    NotAbortableError,
    NotParticipantError,
    NotYourTurnError,
    OutOfSyncError,
)
from chess_sync.core.models import (
    GameModel,
    GamePatch,
    GameSnapshot,
    MoveAccepted,
    MoveModel,
    MoveSubmission,
    PlayerId,
    TimeControl,
)
from chess_sync.core.shared_types import (
    TERMINAL_STATUSES,
    Color,
    ColorPreference,
    GameMode,
    GameResult,
    GameStatus,
    Termination,
)
from chess_sync.db.repository import GameRepository
from chess_sync.db.schema import utc_now
from chess_sync.services.bot import BotDifficulty, BotMoveSource
from chess_sync.services.notifications import Event, LoggingNotifier, Notifier

logger = logging.getLogger(__name__)

# A game can be called off without result as long as at most this many plies were played
ABORTABLE_UP_TO_PLY = 2


def to_seat_color(color: PieceColor) -> Color:
    return Color[color.name]


class GameService:
    """Authoritative state machine for games: waiting -> active -> finished | aborted."""

    def __init__(
        self,
        repository: GameRepository,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = utc_now,
        rng: Optional[random.Random] = None,
        clock_service_id: Optional[PlayerId] = None,
    ) -> None:
        self.repo = repository
        self.notifier = notifier or LoggingNotifier()
        self.clock = clock
        self.rng = rng or random.Random()
        self.clock_service_id = clock_service_id

    # -- Lifecycle ---
    def create_game(
        self,
        creator_id: PlayerId,
        mode: GameMode,
        color_preference: ColorPreference = ColorPreference.RANDOM,
        time_control: Optional[TimeControl] = None,
        initial_fen: Optional[str] = None,
    ) -> GameModel:
        """
        Bot games start active (the empty seat is the engine's). Player vs player games wait for a second player.
        """
        # Fail early on a position that cannot be played from
        start = Position.from_fen(initial_fen or STARTING_FEN).to_fen()

        if color_preference == ColorPreference.RANDOM:
            seat = self.rng.choice([Color.WHITE, Color.BLACK])
        else:
            seat = Color(color_preference.value)

        now = self.clock()
        is_bot = mode == GameMode.BOT
        game = GameModel(
            id=uuid4(),
            mode=mode,
            status=GameStatus.ACTIVE if is_bot else GameStatus.WAITING,
            white_id=creator_id if seat == Color.WHITE else None,
            black_id=creator_id if seat == Color.BLACK else None,
            created_by=creator_id,
            initial_fen=start,
            current_fen=start,
            time_control=time_control or TimeControl(),
            created_at=now,
            started_at=now if is_bot else None,
        )
        stored = self.repo.create_game(game)
        logger.info(
            "Game %s created by %s (%s, plays %s)", stored.id, creator_id, mode.value, seat.value
        )
        return stored

    def get_game(self, game_id: UUID) -> GameSnapshot:
        """The authoritative game plus its move log: what a client reads to (re)synchronize."""
        game = self._fetch_game(game_id)
        return GameSnapshot(game=game, moves=self.repo.list_moves(game_id))

    def join_game(self, game_id: UUID, actor_id: PlayerId) -> GameModel:
        """Fill the open seat of a waiting game. Of two players racing for the same seat, only one gets it."""
        game = self._fetch_game(game_id)

        if game.is_participant(actor_id):
            raise AlreadyParticipantError(f"Player {actor_id} already plays in game {game_id}.")

        open_seat = game.open_seat()
        if open_seat is None:
            raise GameFullError(f"Game {game_id} is full.")

        if game.status != GameStatus.WAITING:
            raise GameNotActiveError(
                f"Game {game_id} is not accepting players. status: {game.status.value}"
            )

        try:
            joined = self.repo.update_game_seats(game_id, open_seat, actor_id, self.clock())
        except ConflictFullError as exc:
            logger.info("Join of game %s by %s lost the race for the seat", game_id, actor_id)
            raise GameFullError(f"Game {game_id} is full.") from exc

        logger.info("Player %s joined game %s as %s", actor_id, game_id, open_seat.value)
        self._publish(game_id, joined)
        return joined

    # -- Moves ---
    def submit_move(self, submission: MoveSubmission) -> MoveAccepted:
        """
        Accept or reject a single move. Checks run in a fixed order, each with its own rejection:
        ----

        1. the game exists (GameNotFoundError)
        2. the game is active (GameNotActiveError)
        3. the actor may move in this game (NotParticipantError)
        4. rebuild the authoritative position from the move log
        5. the side to move is one the actor may move for (NotYourTurnError, or OutOfSyncError when the claimed
           ply is behind: the turn flipped because the game moved on)
        6. the claimed ply is the authoritative ply (OutOfSyncError, carrying the authoritative state)
        7. the move is legal (IllegalMoveError)
        8. derive the terminal status
        9. persist game row + move row in one conditional write
        """
        game_id = submission.game_id
        game = self._fetch_game(game_id)

        if game.status != GameStatus.ACTIVE:
            raise GameNotActiveError(
                f"Game {game_id} is not in progress. status: {game.status.value}"
            )

        movable = self._movable_colors(game, submission.actor_id)
        if not movable:
            raise NotParticipantError(
                f"Player {submission.actor_id} does not play in game {game_id}."
            )

        moves = self.repo.list_moves(game_id)
        authoritative = reconstruct(game.initial_fen, moves, game.current_fen, game.ply)

        is_stale = (
            not authoritative.is_degraded and submission.claimed_ply != authoritative.ply
        )
        side_to_move = to_seat_color(authoritative.position.color_to_move)
        if side_to_move not in movable:
            # a retry or a late racer: the turn only flipped because the game moved on
            if is_stale and submission.claimed_ply < authoritative.ply:
                raise self._out_of_sync(submission.claimed_ply, authoritative)
            raise NotYourTurnError(
                f"It is not your turn. Waiting for {side_to_move.value} to move first."
            )

        if is_stale:
            raise self._out_of_sync(submission.claimed_ply, authoritative)

        new_position, record = apply_move(
            authoritative.position,
            submission.origin,
            submission.destination,
            self._promotion_piece(submission.promotion),
            default_promotion=submission.default_promotion,
        )

        history = (
            None
            if authoritative.is_degraded
            else authoritative.history + (new_position.repetition_key(),)
        )
        termination = terminal_status(new_position, history)

        now = self.clock()
        new_ply = authoritative.ply + 1
        if termination is None:
            status, result = GameStatus.ACTIVE, GameResult.IN_PROGRESS
        else:
            status, result = GameStatus.FINISHED, result_for_termination(new_position, termination)

        patch = GamePatch(
            current_fen=record.fen_after,
            pgn=build_transcript(
                game.initial_fen, [move.san for move in moves] + [record.san], result.value
            ),
            status=status,
            result=result,
            termination=termination,
            ended_at=now if termination else None,
        )
        move = MoveModel(
            game_id=game_id,
            ply=new_ply,
            uci=record.uci,
            san=record.san,
            fen_after=record.fen_after,
            created_at=now,
        )

        try:
            updated = self.repo.write_game_and_append_move(
                game_id, authoritative.ply, patch, move
            )
        except ConflictStaleError as exc:
            raise self._out_of_sync_after_conflict(game_id, authoritative) from exc

        logger.info(
            "Game %s ply %d: %s (%s)%s",
            game_id,
            new_ply,
            record.san,
            record.uci,
            f", game over by {termination.value}" if termination else "",
        )
        self._publish(game_id, updated)
        self._publish(game_id, move)
        return MoveAccepted(game=updated, move=move, degraded=authoritative.is_degraded)

    def legal_destinations(self, game_id: UUID, square: str) -> set[str]:
        """Where the piece on `square` can go in the authoritative position (for highlighting)."""
        game = self._fetch_game(game_id)
        if game.status != GameStatus.ACTIVE:
            return set()
        moves = self.repo.list_moves(game_id)
        authoritative = reconstruct(game.initial_fen, moves, game.current_fen, game.ply)
        return legal_moves_from(authoritative.position, square)

    def play_bot_move(
        self,
        game_id: UUID,
        actor_id: PlayerId,
        bot: BotMoveSource,
        difficulty: BotDifficulty,
    ) -> MoveAccepted:
        """
        Ask the engine for a move and submit it like any other move (same checks, same write).
        Only the controller of a bot game can ask, and only while the game is in progress.
        """
        game = self._fetch_game(game_id)
        if game.mode != GameMode.BOT:
            raise NotParticipantError(f"Game {game_id} is not played against the bot.")
        if game.status != GameStatus.ACTIVE:
            raise GameNotActiveError(
                f"Game {game_id} is not in progress. status: {game.status.value}"
            )
        if actor_id != game.created_by:
            raise NotParticipantError(f"Player {actor_id} does not control the bot in game {game_id}.")

        proposal = bot.request_move(game.current_fen, difficulty)
        logger.debug("Bot proposed %s for game %s at ply %d", proposal, game_id, game.ply)

        move = Move.from_uci(proposal)
        submission = MoveSubmission(
            game_id=game_id,
            actor_id=actor_id,
            origin=move.from_square.to_algebraic(),
            destination=move.to_square.to_algebraic(),
            claimed_ply=game.ply,
            promotion=proposal[4:] or None,
        )
        return self.submit_move(submission)

    # -- Out-of-band endings ---
    def resign(self, game_id: UUID, actor_id: PlayerId) -> GameModel:
        """
        The actor's side loses. Idempotent: on a game that already ended the current state is returned unchanged,
        as a resign click racing with the final move must not come back as an error.
        """
        game = self._fetch_game(game_id)
        if not game.is_participant(actor_id):
            raise NotParticipantError(f"Player {actor_id} does not play in game {game_id}.")
        if game.status in TERMINAL_STATUSES:
            return game
        if game.status != GameStatus.ACTIVE:
            raise GameNotActiveError(
                f"Game {game_id} is not in progress. status: {game.status.value}"
            )

        loser = self._acting_color(game, actor_id)
        winner_result = GameResult.BLACK_WINS if loser == Color.WHITE else GameResult.WHITE_WINS
        return self._finish(game, Termination.RESIGN, winner_result)

    def flag_timeout(self, game_id: UUID, actor_id: PlayerId, flagged: Color) -> GameModel:
        """
        Out-of-band event from the clock: the flagged side ran out of time. Idempotent like resign.
        Reported by the clock service, or by a player whose opponent's clock ran out.
        """
        game = self._fetch_game(game_id)
        if not self._may_flag(game, actor_id, flagged):
            raise NotParticipantError(
                f"Player {actor_id} cannot flag {flagged.value} in game {game_id}."
            )
        if game.status in TERMINAL_STATUSES:
            return game
        if game.status != GameStatus.ACTIVE:
            raise GameNotActiveError(
                f"Game {game_id} is not in progress. status: {game.status.value}"
            )

        winner_result = GameResult.BLACK_WINS if flagged == Color.WHITE else GameResult.WHITE_WINS
        return self._finish(game, Termination.TIMEOUT, winner_result)

    def offer_draw(self, game_id: UUID, actor_id: PlayerId) -> GameModel:
        """Stands until the opponent accepts it or the next move is played."""
        game = self._fetch_game(game_id)
        if not game.is_participant(actor_id):
            raise NotParticipantError(f"Player {actor_id} does not play in game {game_id}.")
        if game.status != GameStatus.ACTIVE:
            raise GameNotActiveError(
                f"Game {game_id} is not in progress. status: {game.status.value}"
            )

        offered_by = self._acting_color(game, actor_id)
        try:
            updated = self.repo.set_draw_offer(game_id, game.ply, offered_by)
        except ConflictStaleError as exc:
            current = self._fetch_game(game_id)
            raise OutOfSyncError(
                f"Game {game_id} moved on before the draw offer was recorded.",
                authoritative_ply=current.ply,
                authoritative_fen=current.current_fen,
            ) from exc

        logger.info("Draw offered by %s in game %s", offered_by.value, game_id)
        self._publish(game_id, updated)
        return updated

    def accept_draw(self, game_id: UUID, actor_id: PlayerId) -> GameModel:
        game = self._fetch_game(game_id)
        if not game.is_participant(actor_id):
            raise NotParticipantError(f"Player {actor_id} does not play in game {game_id}.")
        if game.status in TERMINAL_STATUSES:
            return game
        if game.status != GameStatus.ACTIVE:
            raise GameNotActiveError(
                f"Game {game_id} is not in progress. status: {game.status.value}"
            )

        if game.draw_offer is None or game.draw_offer in game.seats_of(actor_id):
            raise NoDrawOfferError(f"No draw offer from the opponent in game {game_id}.")
        return self._finish(game, Termination.DRAW_AGREEMENT, GameResult.DRAW)

    def abort(self, game_id: UUID, actor_id: PlayerId) -> GameModel:
        """
        Call a game off without result.
        * while waiting: only the creator
        * while active: any player, as long as at most two plies were played
        Idempotent on an aborted game.
        """
        game = self._fetch_game(game_id)
        if game.status == GameStatus.ABORTED:
            return game
        if game.status == GameStatus.FINISHED:
            raise GameNotActiveError(f"Game {game_id} already finished.")

        if game.status == GameStatus.WAITING and actor_id != game.created_by:
            raise NotParticipantError(f"Only the creator can cancel game {game_id}.")
        if game.status == GameStatus.ACTIVE:
            if not self._movable_colors(game, actor_id):
                raise NotParticipantError(
                    f"Player {actor_id} does not play in game {game_id}."
                )
            if game.ply > ABORTABLE_UP_TO_PLY:
                raise NotAbortableError(
                    f"Game {game_id} is past ply {ABORTABLE_UP_TO_PLY}: resign instead."
                )

        patch = GamePatch(
            status=GameStatus.ABORTED,
            termination=Termination.ABORTED,
            ended_at=self.clock(),
        )
        try:
            updated = self.repo.update_game_status(game_id, game.status, patch)
        except ConflictStaleError as exc:
            current = self._fetch_game(game_id)
            if current.status == GameStatus.ABORTED:
                return current
            raise GameNotActiveError(
                f"Game {game_id} changed status to {current.status.value} meanwhile."
            ) from exc

        logger.info("Game %s aborted by %s", game_id, actor_id)
        self._publish(game_id, updated)
        return updated

    # -- Internal helpers --
    def _finish(
        self, game: GameModel, termination: Termination, result: GameResult
    ) -> GameModel:
        """Conditional write of an out-of-band ending. Losing the race to another ending returns that ending."""
        moves = self.repo.list_moves(game.id)
        patch = GamePatch(
            pgn=build_transcript(game.initial_fen, [move.san for move in moves], result.value),
            status=GameStatus.FINISHED,
            result=result,
            termination=termination,
            ended_at=self.clock(),
        )
        try:
            updated = self.repo.update_game_status(game.id, GameStatus.ACTIVE, patch)
        except ConflictStaleError as exc:
            current = self._fetch_game(game.id)
            if current.status in TERMINAL_STATUSES:
                logger.info(
                    "Game %s already ended (%s) before %s", game.id, current.termination, termination.value
                )
                return current
            raise GameNotActiveError(
                f"Game {game.id} is not in progress. status: {current.status.value}"
            ) from exc

        logger.info("Game %s finished: %s by %s", game.id, result.value, termination.value)
        self._publish(game.id, updated)
        return updated

    def _movable_colors(self, game: GameModel, actor_id: PlayerId) -> set[Color]:
        """
        Colors the actor may submit moves for: their own seat(s), and in a bot game the creator
        (who controls the bot) also moves for the empty seat, which is the engine's side.
        """
        colors = game.seats_of(actor_id)
        if game.mode == GameMode.BOT and actor_id == game.created_by:
            colors |= {color for color in Color if game.player_id(color) is None}
        return colors

    def _may_flag(self, game: GameModel, actor_id: PlayerId, flagged: Color) -> bool:
        if self.clock_service_id is not None and actor_id == self.clock_service_id:
            return True
        seats = game.seats_of(actor_id)
        return bool(seats) and flagged not in seats

    def _acting_color(self, game: GameModel, actor_id: PlayerId) -> Color:
        """The actor's color. Someone sitting at both sides acts for the side to move."""
        seats = game.seats_of(actor_id)
        if len(seats) == 1:
            return seats.pop()
        return to_seat_color(Position.from_fen(game.current_fen).color_to_move)

    def _promotion_piece(self, promotion: Optional[str]) -> Optional[PieceType]:
        if promotion is None:
            return None
        piece_type = FEN_TO_PIECE.get(promotion.lower())
        if piece_type is None:
            raise IllegalMoveError(f"Cannot promote to {promotion!r}.")
        return piece_type

    def _out_of_sync(
        self, claimed_ply: int, authoritative: ReconstructionResult
    ) -> OutOfSyncError:
        return OutOfSyncError(
            f"Claimed ply {claimed_ply}, but {authoritative.ply} plies have been played.",
            authoritative_ply=authoritative.ply,
            authoritative_fen=authoritative.position.to_fen(),
        )

    def _out_of_sync_after_conflict(
        self, game_id: UUID, observed: ReconstructionResult
    ) -> OutOfSyncError:
        """Another write got in between validation and persistence. Report where the game is now."""
        current = self._fetch_game(game_id)
        logger.info(
            "Move on game %s lost the race at ply %d (now at ply %d)",
            game_id,
            observed.ply,
            current.ply,
        )
        return OutOfSyncError(
            f"Game {game_id} moved on while the move was being validated.",
            authoritative_ply=current.ply,
            authoritative_fen=current.current_fen,
        )

    def _publish(self, game_id: UUID, event: Event) -> None:
        """Fire and forget: a failing fan-out never changes the outcome of a call."""
        try:
            self.notifier.publish(game_id, event)
        except Exception:
            logger.exception("Publishing an event for game %s failed", game_id)

    def _fetch_game(self, game_id: UUID) -> GameModel:
        """Attempt to find the game in the repository and raise error if it fails."""
        game = self.repo.get_game(game_id)
        if game is None:
            raise GameNotFoundError(f"Game with {game_id=} not found.")
        return game
