"""
Quizzes Infrastructure Layer
=============================

Infrastructure implementations for the quizzes module:
- Models: SQLAlchemy ORM models
- Repositories: Data access layer
"""

from quizhub.quizzes.infrastructure.models import UserModel, QuizModel, QuestionModel
from quizhub.quizzes.infrastructure.repositories import (
    SQLAlchemyUserRepository,
    SQLAlchemyQuizRepository,
    SQLAlchemyQuestionRepository,
)

__all__ = [
    "UserModel",
    "QuizModel",
    "QuestionModel",
    "SQLAlchemyUserRepository",
    "SQLAlchemyQuizRepository",
    "SQLAlchemyQuestionRepository",
]
