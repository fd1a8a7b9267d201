"""
Quizzes Infrastructure Repositories
====================================

SQLAlchemy implementations of the quizzes repository interfaces.

Deletes are issued as plain DELETE statements so the database's
ON DELETE CASCADE foreign keys remove dependent rows.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from quizhub.core import RepositoryException, ResourceNotFoundException
from quizhub.quizzes.application import (
    IUserRepository, IQuizRepository, IQuestionRepository,
    UserCreateDTO, QuizCreateDTO, QuestionCreateDTO,
)
from quizhub.quizzes.infrastructure.models import UserModel, QuizModel, QuestionModel
from quizhub.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


def _utcnow() -> datetime:
    # TIMESTAMP columns hold naive UTC values (session time zone is +00:00)
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SQLAlchemyUserRepository(IUserRepository):
    """Persistence of users using async SQLAlchemy."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, user_dto: UserCreateDTO) -> UserModel:
        """Create new user; the email must be unused."""
        model = UserModel(
            email=user_dto.email,
            password=user_dto.password_hash,
            name=user_dto.name,
            role=user_dto.role,
        )
        self._session.add(model)
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise RepositoryException(
                f"User with email '{user_dto.email}' already exists",
                {"email": user_dto.email}
            ) from e

        await self._session.refresh(model)
        logger.info("User created", extra={"user_id": model.id})
        return model

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        return await self._session.get(UserModel, user_id)

    async def get_by_email(self, email: str) -> Optional[UserModel]:
        stmt = select(UserModel).where(UserModel.email == email.strip().lower())
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def record_login(self, user_id: int, at: Optional[datetime] = None) -> None:
        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(last_login=at or _utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise ResourceNotFoundException("User", str(user_id))

    async def delete(self, user_id: int) -> None:
        """Delete user; quizzes and their questions cascade."""
        result = await self._session.execute(
            delete(UserModel)
            .where(UserModel.id == user_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ResourceNotFoundException("User", str(user_id))
        self._session.expunge_all()
        logger.info("User deleted", extra={"user_id": user_id})


class SQLAlchemyQuizRepository(IQuizRepository):
    """Persistence of quizzes using async SQLAlchemy."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, quiz_dto: QuizCreateDTO) -> QuizModel:
        """Create new quiz for an existing user."""
        model = QuizModel(
            user_id=quiz_dto.user_id,
            title=quiz_dto.title,
            description=quiz_dto.description,
            topic=quiz_dto.topic,
            difficulty=quiz_dto.difficulty,
        )
        self._session.add(model)
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise RepositoryException(
                f"Cannot create quiz for user {quiz_dto.user_id}",
                {"user_id": quiz_dto.user_id}
            ) from e

        await self._session.refresh(model)
        return model

    async def get_by_id(self, quiz_id: int) -> Optional[QuizModel]:
        return await self._session.get(QuizModel, quiz_id)

    async def list_by_user(self, user_id: int, limit: int = 100, offset: int = 0) -> List[QuizModel]:
        stmt = (
            select(QuizModel)
            .where(QuizModel.user_id == user_id)
            .order_by(QuizModel.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def delete(self, quiz_id: int) -> None:
        """Delete quiz; its questions cascade."""
        result = await self._session.execute(
            delete(QuizModel)
            .where(QuizModel.id == quiz_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ResourceNotFoundException("Quiz", str(quiz_id))
        self._session.expunge_all()


class SQLAlchemyQuestionRepository(IQuestionRepository):
    """Persistence of questions using async SQLAlchemy."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, question_dto: QuestionCreateDTO) -> QuestionModel:
        """Create new question in an existing quiz."""
        model = QuestionModel(
            quiz_id=question_dto.quiz_id,
            question_text=question_dto.question_text,
            question_type=question_dto.question_type,
            correct_answer=question_dto.correct_answer,
            options=question_dto.options,
            explanation=question_dto.explanation,
            points=question_dto.points,
        )
        self._session.add(model)
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise RepositoryException(
                f"Cannot create question for quiz {question_dto.quiz_id}",
                {"quiz_id": question_dto.quiz_id}
            ) from e

        await self._session.refresh(model)
        return model

    async def get_by_id(self, question_id: int) -> Optional[QuestionModel]:
        return await self._session.get(QuestionModel, question_id)

    async def delete(self, question_id: int) -> None:
        result = await self._session.execute(
            delete(QuestionModel)
            .where(QuestionModel.id == question_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ResourceNotFoundException("Question", str(question_id))
        self._session.expunge_all()
        logger.info("Question deleted", extra={"question_id": question_id})

    async def list_by_quiz(self, quiz_id: int) -> List[QuestionModel]:
        stmt = (
            select(QuestionModel)
            .where(QuestionModel.quiz_id == quiz_id)
            .order_by(QuestionModel.id.asc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def count_by_quiz(self, quiz_id: int) -> int:
        stmt = select(func.count(QuestionModel.id)).where(QuestionModel.quiz_id == quiz_id)
        result = await self._session.execute(stmt)
        return result.scalar_one()
