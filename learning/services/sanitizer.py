"""
Student-facing views of a quiz.

Before an attempt, answer-revealing fields (correct answers, explanations,
option correctness) are always removed. After submission they are shown only
when the quiz has ``show_correct_answers`` enabled.
"""
import random

REDACTED_RESULT_FIELDS = ('question_id', 'user_answer', 'is_correct')


def redact_results(results, reveal: bool):
    """Per-question results with the correct answer withheld unless revealed."""
    if reveal:
        return [dict(result) for result in results]
    return [{key: result.get(key) for key in REDACTED_RESULT_FIELDS} for result in results]


def public_options(options):
    return [{'id': option.get('id'), 'text': option.get('text')} for option in options or []]


class QuizSanitizer:

    def __init__(self, rng=None):
        self.rng = rng or random.Random()

    def for_attempt(self, quiz, prior_attempts: int) -> dict:
        """Quiz ready to be taken: no answers, optionally shuffled."""
        questions = []
        for question in quiz.questions.all():
            options = public_options(question.options)
            if quiz.shuffle_options:
                self.rng.shuffle(options)
            questions.append({
                'id': str(question.pk),
                'title': question.title,
                'content': question.content,
                'question_type': question.question_type,
                'points': float(question.points),
                'order': question.order,
                'options': options,
            })

        if quiz.shuffle_questions:
            self.rng.shuffle(questions)

        return {
            **self.quiz_fields(quiz),
            'questions': questions,
            'completed': False,
            'metadata': self.metadata(quiz, prior_attempts + 1, prior_attempts),
        }

    def for_review(self, quiz, attempt, attempt_count: int) -> dict:
        """The given attempt merged with the quiz's question text."""
        reveal = quiz.show_correct_answers
        questions_by_id = {str(q.pk): q for q in quiz.questions.all()}

        questions = []
        for result in attempt.results:
            question = questions_by_id.get(result['question_id'])
            entry = {
                'id': result['question_id'],
                'title': question.title if question else '',
                'content': question.content if question else '',
                'question_type': question.question_type if question else None,
                'order': question.order if question else None,
                'points': result['points'],
                'options': [],
                'user_answer': result.get('user_answer'),
                'is_correct': result['is_correct'],
                'earned_points': result['earned_points'],
            }
            if question:
                entry['options'] = (
                    [dict(option) for option in question.options] if reveal
                    else public_options(question.options)
                )
            if reveal:
                entry['correct_answer'] = result.get('correct_answer')
                entry['explanation'] = question.explanation if question else ''
            questions.append(entry)

        return {
            **self.quiz_fields(quiz),
            'questions': questions,
            'completed': True,
            'submission': {
                'attempt_number': attempt.attempt_number,
                'score': float(attempt.score),
                'passed': attempt.passed,
                'submitted_at': attempt.submitted_at,
                'time_taken': attempt.time_taken,
            },
            'metadata': self.metadata(quiz, attempt_count, attempt_count),
        }

    @staticmethod
    def quiz_fields(quiz) -> dict:
        return {
            'id': quiz.pk,
            'title': quiz.title,
            'description': quiz.description,
            'instructions': quiz.instructions,
            'course': quiz.course_id,
            'module': quiz.module_id,
            'lesson': quiz.lesson_id,
            'quiz_type': quiz.quiz_type,
            'passing_score': float(quiz.passing_score),
            'total_points': float(quiz.total_points),
            'show_correct_answers': quiz.show_correct_answers,
            'allow_review': quiz.allow_review,
            'available_from': quiz.available_from,
            'available_until': quiz.available_until,
        }

    @staticmethod
    def metadata(quiz, attempt_number: int, attempts_used: int) -> dict:
        return {
            'attempt_number': attempt_number,
            'max_attempts': quiz.max_attempts,
            'attempts_remaining': max(0, quiz.max_attempts - attempts_used),
            'time_limit': quiz.time_limit,
            'due_date': quiz.due_date,
        }
