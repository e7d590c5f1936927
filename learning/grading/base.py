from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class QuestionSpec:
    question_id: str
    question_type: str
    correct_answer: Any
    points: float
    title: str = ""
    content: str = ""
    explanation: str = ""
    options: tuple = ()
    order: int = 0

    @classmethod
    def from_question(cls, question) -> "QuestionSpec":
        return cls(
            question_id=str(question.pk),
            question_type=question.question_type,
            correct_answer=question.correct_answer,
            points=float(question.points or 0),
            title=question.title,
            content=question.content,
            explanation=question.explanation,
            options=tuple(dict(option) for option in (question.options or [])),
            order=question.order,
        )


@dataclass(frozen=True)
class QuizSnapshot:
    """Immutable view of a quiz taken at submission time."""
    quiz_id: int
    passing_score: float
    auto_grade: bool
    questions: tuple = field(default_factory=tuple)

    @classmethod
    def from_quiz(cls, quiz) -> "QuizSnapshot":
        return cls(
            quiz_id=quiz.pk,
            passing_score=float(quiz.passing_score),
            auto_grade=quiz.auto_grade,
            questions=tuple(QuestionSpec.from_question(q) for q in quiz.questions.all()),
        )

    @property
    def question_ids(self) -> set:
        return {q.question_id for q in self.questions}


@dataclass
class GradingResult:
    question_id: str
    user_answer: Any
    correct_answer: Any
    is_correct: bool
    points: float
    earned_points: float
    auto_scored: bool = True

    def to_dict(self) -> dict:
        return {
            'question_id': self.question_id,
            'user_answer': self.user_answer,
            'correct_answer': self.correct_answer,
            'is_correct': self.is_correct,
            'points': self.points,
            'earned_points': self.earned_points,
        }


class QuestionGrader(ABC):
    """Scores one question type. Subclasses only decide correctness."""
    auto_scored = True

    def grade(self, question: QuestionSpec, user_answer: Optional[Any]) -> GradingResult:
        is_correct = self.auto_scored and self.is_correct(user_answer, question.correct_answer)
        return GradingResult(
            question_id=question.question_id,
            user_answer=user_answer,
            correct_answer=question.correct_answer,
            is_correct=is_correct,
            points=question.points,
            earned_points=question.points if is_correct else 0.0,
            auto_scored=self.auto_scored,
        )

    @abstractmethod
    def is_correct(self, user_answer: Any, correct_answer: Any) -> bool:
        pass
