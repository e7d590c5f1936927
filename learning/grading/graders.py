"""
Per-type answer comparison.

Choice questions compare stringified values so that ``true``/``"true"`` and
``1``/``"1"`` are the same answer. Short answers ignore case and surrounding
whitespace. Essay and matching questions are left for manual grading.
"""
from typing import Any

from .base import QuestionGrader


def stringify_answer(value: Any):
    """String form of a submitted or expected answer. Lists join their items with commas."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return ','.join('' if item is None else stringify_answer(item) for item in value)
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class ChoiceGrader(QuestionGrader):
    """Multiple-choice and true/false: exact match on string form."""

    def is_correct(self, user_answer: Any, correct_answer: Any) -> bool:
        submitted = stringify_answer(user_answer)
        return submitted is not None and submitted == stringify_answer(correct_answer)


class ShortAnswerGrader(QuestionGrader):

    @staticmethod
    def normalize(value: Any) -> str:
        return (stringify_answer(value) or '').strip().lower()

    def is_correct(self, user_answer: Any, correct_answer: Any) -> bool:
        return self.normalize(user_answer) == self.normalize(correct_answer)


class ManualGrader(QuestionGrader):
    """Essay, matching, and any question of a quiz with auto-grading off."""
    auto_scored = False

    def is_correct(self, user_answer: Any, correct_answer: Any) -> bool:
        return False
