import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from .base import GradingResult, QuizSnapshot
from .factory import get_grader

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal('0.01')


@dataclass
class ScoreSummary:
    results: List[GradingResult] = field(default_factory=list)
    earned_points: float = 0.0
    total_points: float = 0.0
    score: float = 0.0
    passed: bool = False

    @property
    def correct_answers(self) -> int:
        return sum(1 for r in self.results if r.is_correct)

    @property
    def pending_review(self) -> int:
        return sum(1 for r in self.results if not r.auto_scored)


class ScoringEngine:
    """Grades a full submission against a quiz snapshot."""

    def score(self, quiz: QuizSnapshot, answers: Optional[Dict[str, Any]]) -> ScoreSummary:
        answers = answers or {}
        summary = ScoreSummary()

        for question in quiz.questions:
            grader = get_grader(question.question_type, auto_grade=quiz.auto_grade)
            result = grader.grade(question, answers.get(question.question_id))
            summary.results.append(result)
            summary.total_points += result.points
            summary.earned_points += result.earned_points

        summary.score = self.percentage(summary.earned_points, summary.total_points)
        summary.passed = summary.score >= quiz.passing_score

        logger.debug(
            "Scored quiz %s: %s/%s points (%s%%)",
            quiz.quiz_id, summary.earned_points, summary.total_points, summary.score
        )
        return summary

    @staticmethod
    def percentage(earned: float, total: float) -> float:
        """Percentage rounded half up to two places."""
        if total <= 0:
            return 0.0
        raw = Decimal(str(earned)) * 100 / Decimal(str(total))
        return float(raw.quantize(TWO_PLACES, rounding=ROUND_HALF_UP))
