"""
Game endpoints.

Handlers only translate between HTTP and the service: all checks happen in GameService, all rejections are turned
into responses by the handlers in api/errors.py.
"""

from http import HTTPStatus
from uuid import UUID

from fastapi import APIRouter, Query

from chess_sync.api.dependencies import ActorId, Bot, Service
from chess_sync.api.models import (
    BotMoveRequest,
    CreateGameRequest,
    GameResponse,
    LegalMovesResponse,
    MoveRequest,
    MoveSubmissionResponse,
    TimeoutRequest,
)
from chess_sync.core.models import MoveSubmission, TimeControl
from chess_sync.services.bot import BOT_DIFFICULTIES

router = APIRouter(
    prefix="/games",
    tags=["games"],
    responses={404: {"description": "Game not found"}},
)


@router.post("", response_model=GameResponse, status_code=HTTPStatus.CREATED)
def create_game(request: CreateGameRequest, actor_id: ActorId, service: Service) -> GameResponse:
    """
    Bot games start right away, player vs player games wait for a second player to join.
    """
    game = service.create_game(
        creator_id=actor_id,
        mode=request.mode,
        color_preference=request.color,
        time_control=TimeControl(request.base_ms, request.increment_ms),
        initial_fen=request.initial_fen,
    )
    return GameResponse.from_model(game, [])


@router.get("/{game_id}", response_model=GameResponse)
def get_game(game_id: UUID, service: Service) -> GameResponse:
    """The authoritative game with its move log. Clients read this to resynchronize."""
    return GameResponse.from_snapshot(service.get_game(game_id))


@router.post("/{game_id}/join", response_model=GameResponse)
def join_game(game_id: UUID, actor_id: ActorId, service: Service) -> GameResponse:
    return GameResponse.from_model(service.join_game(game_id, actor_id))


@router.post("/{game_id}/moves", response_model=MoveSubmissionResponse)
def submit_move(
    game_id: UUID, request: MoveRequest, actor_id: ActorId, service: Service
) -> MoveSubmissionResponse:
    submission = MoveSubmission(
        game_id=game_id,
        actor_id=actor_id,
        origin=request.from_square,
        destination=request.to_square,
        claimed_ply=request.claimed_ply,
        promotion=request.promotion,
        default_promotion=request.default_promotion,
    )
    return MoveSubmissionResponse.from_accepted(service.submit_move(submission))


@router.post("/{game_id}/bot-move", response_model=MoveSubmissionResponse)
def play_bot_move(
    game_id: UUID, request: BotMoveRequest, actor_id: ActorId, service: Service, bot: Bot
) -> MoveSubmissionResponse:
    """Let the engine move for the bot side. Only the game's creator controls the bot."""
    accepted = service.play_bot_move(
        game_id, actor_id, bot, BOT_DIFFICULTIES[request.difficulty]
    )
    return MoveSubmissionResponse.from_accepted(accepted)


@router.get("/{game_id}/legal-moves", response_model=LegalMovesResponse)
def legal_moves(
    game_id: UUID,
    service: Service,
    square: str = Query(min_length=2, max_length=2),
) -> LegalMovesResponse:
    square = square.lower()
    destinations = service.legal_destinations(game_id, square)
    return LegalMovesResponse(game_id=game_id, square=square, destinations=sorted(destinations))


@router.post("/{game_id}/resign", response_model=GameResponse)
def resign(game_id: UUID, actor_id: ActorId, service: Service) -> GameResponse:
    return GameResponse.from_model(service.resign(game_id, actor_id))


@router.post("/{game_id}/abort", response_model=GameResponse)
def abort(game_id: UUID, actor_id: ActorId, service: Service) -> GameResponse:
    return GameResponse.from_model(service.abort(game_id, actor_id))


@router.post("/{game_id}/draw/offer", response_model=GameResponse)
def offer_draw(game_id: UUID, actor_id: ActorId, service: Service) -> GameResponse:
    return GameResponse.from_model(service.offer_draw(game_id, actor_id))


@router.post("/{game_id}/draw/accept", response_model=GameResponse)
def accept_draw(game_id: UUID, actor_id: ActorId, service: Service) -> GameResponse:
    return GameResponse.from_model(service.accept_draw(game_id, actor_id))


@router.post("/{game_id}/timeout", response_model=GameResponse)
def flag_timeout(
    game_id: UUID, request: TimeoutRequest, actor_id: ActorId, service: Service
) -> GameResponse:
    """Called by the clock service (or the opponent's client) when a side runs out of time."""
    return GameResponse.from_model(service.flag_timeout(game_id, actor_id, request.flagged))
