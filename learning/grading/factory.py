from learning.models.quiz import Question
from .base import QuestionGrader
from .graders import ChoiceGrader, ShortAnswerGrader, ManualGrader

QuestionType = Question.QuestionType

GRADERS = {
    QuestionType.MULTIPLE_CHOICE: ChoiceGrader(),
    QuestionType.TRUE_FALSE: ChoiceGrader(),
    QuestionType.SHORT_ANSWER: ShortAnswerGrader(),
    QuestionType.ESSAY: ManualGrader(),
    QuestionType.MATCHING: ManualGrader(),
}

MANUAL_GRADER = GRADERS[QuestionType.ESSAY]


def get_grader(question_type: str, auto_grade: bool = True) -> QuestionGrader:
    if not auto_grade:
        return MANUAL_GRADER
    try:
        return GRADERS[question_type]
    except KeyError:
        raise ValueError(f"Unknown question type: {question_type}")
