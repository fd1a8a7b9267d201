"""
Repository Interfaces
======================

Abstractions the quizzes module depends on; concrete SQLAlchemy
implementations live in the infrastructure layer.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, List, Optional

from quizhub.quizzes.application.dto import UserCreateDTO, QuizCreateDTO, QuestionCreateDTO


class IUserRepository(ABC):
    """Interface for user data access."""

    @abstractmethod
    async def create(self, user_dto: UserCreateDTO) -> Any:
        """Create new user."""

    @abstractmethod
    async def get_by_id(self, user_id: int) -> Optional[Any]:
        """Get user by ID."""

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[Any]:
        """Get user by email."""

    @abstractmethod
    async def record_login(self, user_id: int, at: Optional[datetime] = None) -> None:
        """Set last_login."""

    @abstractmethod
    async def delete(self, user_id: int) -> None:
        """Delete user together with everything they own."""


class IQuizRepository(ABC):
    """Interface for quiz data access."""

    @abstractmethod
    async def create(self, quiz_dto: QuizCreateDTO) -> Any:
        """Create new quiz."""

    @abstractmethod
    async def get_by_id(self, quiz_id: int) -> Optional[Any]:
        """Get quiz by ID."""

    @abstractmethod
    async def list_by_user(self, user_id: int, limit: int = 100, offset: int = 0) -> List[Any]:
        """List quizzes owned by a user."""

    @abstractmethod
    async def delete(self, quiz_id: int) -> None:
        """Delete quiz together with its questions."""


class IQuestionRepository(ABC):
    """Interface for question data access."""

    @abstractmethod
    async def create(self, question_dto: QuestionCreateDTO) -> Any:
        """Create new question."""

    @abstractmethod
    async def get_by_id(self, question_id: int) -> Optional[Any]:
        """Get question by ID."""

    @abstractmethod
    async def delete(self, question_id: int) -> None:
        """Delete question."""

    @abstractmethod
    async def list_by_quiz(self, quiz_id: int) -> List[Any]:
        """List questions of a quiz."""

    @abstractmethod
    async def count_by_quiz(self, quiz_id: int) -> int:
        """Count questions of a quiz."""
