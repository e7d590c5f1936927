from .base import QuestionSpec, QuizSnapshot, GradingResult, QuestionGrader
from .graders import ChoiceGrader, ShortAnswerGrader, ManualGrader
from .factory import get_grader
from .engine import ScoringEngine, ScoreSummary

__all__ = [
    'QuestionSpec', 'QuizSnapshot', 'GradingResult', 'QuestionGrader',
    'ChoiceGrader', 'ShortAnswerGrader', 'ManualGrader',
    'get_grader', 'ScoringEngine', 'ScoreSummary'
]
