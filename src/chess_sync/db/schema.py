"""Database tables / schema"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class DBGame(Base):
    __tablename__ = "games"
    id: Mapped[UUID] = mapped_column(primary_key=True)
    mode: Mapped[str] = mapped_column(String(8))
    status: Mapped[str] = mapped_column(String(16), index=True)
    white_id: Mapped[Optional[str]]
    black_id: Mapped[Optional[str]]
    created_by: Mapped[str]
    initial_fen: Mapped[str]
    current_fen: Mapped[str]
    pgn: Mapped[str] = mapped_column(default="")
    result: Mapped[str] = mapped_column(String(8), default="*")
    termination: Mapped[Optional[str]] = mapped_column(String(32))
    # number of moves in the log: the compare-and-swap token for move writes
    ply: Mapped[int] = mapped_column(default=0)
    draw_offer: Mapped[Optional[str]] = mapped_column(String(8))
    base_ms: Mapped[int]
    increment_ms: Mapped[int]
    created_at: Mapped[datetime] = mapped_column(default=utc_now)
    started_at: Mapped[Optional[datetime]]
    ended_at: Mapped[Optional[datetime]]
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)


class DBMove(Base):
    __tablename__ = "moves"
    # Second line of defence against two writers appending the same ply
    __table_args__ = (UniqueConstraint("game_id", "ply", name="uq_moves_game_ply"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    game_id: Mapped[UUID] = mapped_column(ForeignKey("games.id"), index=True)
    ply: Mapped[int]
    uci: Mapped[str] = mapped_column(String(5))
    san: Mapped[str] = mapped_column(String(16))
    fen_after: Mapped[str]
    created_at: Mapped[datetime] = mapped_column(default=utc_now)
