"""
Quizzes Application DTOs
=========================

Pydantic models validating data on its way into the repositories.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Any, List, Literal, Optional


# ========== Type Aliases for Literals ==========
RoleStr = Literal["admin", "user"]
DifficultyStr = Literal["easy", "medium", "hard"]
QuestionTypeStr = Literal["multiple_choice", "true_false", "short_answer"]


class UserCreateDTO(BaseModel):
    """DTO for creating an account."""
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password_hash: str = Field(..., min_length=1, max_length=255, description="Already-hashed password")
    name: Optional[str] = Field(None, max_length=255)
    role: RoleStr = Field(default="user")

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


class QuizCreateDTO(BaseModel):
    """DTO for creating a quiz."""
    user_id: int = Field(..., ge=1, description="Owning user")
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    topic: Optional[str] = Field(None, max_length=255)
    difficulty: DifficultyStr = Field(default="medium")


class QuestionCreateDTO(BaseModel):
    """DTO for creating a question."""
    quiz_id: int = Field(..., ge=1, description="Owning quiz")
    question_text: str = Field(..., min_length=1)
    question_type: QuestionTypeStr = Field(default="multiple_choice")
    correct_answer: str = Field(..., min_length=1)
    options: Optional[List[Any]] = Field(None, description="Answer choices")
    explanation: Optional[str] = None
    points: int = Field(default=1, ge=0)

    @model_validator(mode="after")
    def validate_options(self) -> "QuestionCreateDTO":
        """Multiple choice questions need at least two options."""
        if self.question_type == "multiple_choice" and len(self.options or []) < 2:
            raise ValueError("multiple_choice questions need at least two options")
        return self
