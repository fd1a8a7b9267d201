"""
Quizzes Application Layer
==========================

Contains:
- DTOs: validated input for the repositories
- Repository interfaces

This layer does not depend on concrete infrastructure implementations.
"""

from quizhub.quizzes.application.dto import (
    UserCreateDTO,
    QuizCreateDTO,
    QuestionCreateDTO,
)
from quizhub.quizzes.application.interfaces import (
    IUserRepository,
    IQuizRepository,
    IQuestionRepository,
)

__all__ = [
    # DTOs
    "UserCreateDTO",
    "QuizCreateDTO",
    "QuestionCreateDTO",
    # Repository Interfaces
    "IUserRepository",
    "IQuizRepository",
    "IQuestionRepository",
]
