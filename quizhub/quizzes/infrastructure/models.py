"""
Quizzes Infrastructure Models
==============================

SQLAlchemy ORM models for users, quizzes and questions.

These mirror ``schema.sql`` so that non-MySQL databases (SQLite in
development and tests) get the same tables, keys and cascades.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON, DateTime, Enum, ForeignKey, Index, Integer, String, Text, func,
)
from sqlalchemy.orm import Mapped, mapped_column

from quizhub.infrastructure.database.base import Base
from quizhub.config import (
    UserRole, Difficulty, QuestionType,
    VALID_ROLES, VALID_DIFFICULTIES, VALID_QUESTION_TYPES,
)

MYSQL_TABLE_ARGS = {
    "mysql_engine": "InnoDB",
    "mysql_charset": "utf8mb4",
    "mysql_collate": "utf8mb4_unicode_ci",
}


class UserModel(Base):
    """
    Database model for an account.

    Maps to the 'users' table.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    # Password hash, never the plain text
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(
        Enum(*VALID_ROLES, name="role"),
        default=UserRole.USER,
        server_default=UserRole.USER,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.current_timestamp())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
    )
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        Index("email_idx", "email", unique=True),
        MYSQL_TABLE_ARGS,
    )


class QuizModel(Base):
    """
    Database model for a quiz owned by a user.

    Maps to the 'quizzes' table.
    """
    __tablename__ = "quizzes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    topic: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    difficulty: Mapped[str] = mapped_column(
        Enum(*VALID_DIFFICULTIES, name="difficulty"),
        default=Difficulty.MEDIUM,
        server_default=Difficulty.MEDIUM,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.current_timestamp())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
    )

    __table_args__ = (
        Index("user_id_idx", "user_id"),
        Index("title_idx", "title"),
        MYSQL_TABLE_ARGS,
    )


class QuestionModel(Base):
    """
    Database model for a question belonging to a quiz.

    Maps to the 'questions' table. ``options`` is stored as an opaque JSON
    document (answer choices for multiple choice questions).
    """
    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    quiz_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("quizzes.id", ondelete="CASCADE"),
        nullable=False,
    )
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    question_type: Mapped[str] = mapped_column(
        Enum(*VALID_QUESTION_TYPES, name="question_type"),
        default=QuestionType.MULTIPLE_CHOICE,
        server_default=QuestionType.MULTIPLE_CHOICE,
    )
    correct_answer: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    explanation: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    points: Mapped[int] = mapped_column(Integer, default=1, server_default="1")

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.current_timestamp())

    __table_args__ = (
        Index("quiz_id_idx", "quiz_id"),
        MYSQL_TABLE_ARGS,
    )
