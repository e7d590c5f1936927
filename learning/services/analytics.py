"""
Quiz Statistics Service.
Submission counts, score and pass-rate figures and timing per quiz, plus a
roll-up across a course or the whole platform.
"""
from django.db.models import Avg, Count, Max, Min, Q
import numpy as np

from learning.models import Quiz, QuizAttempt


class QuizAnalytics:
    def __init__(self, quiz, start_date=None, end_date=None):
        self.quiz = quiz
        self.start_date = start_date
        self.end_date = end_date

    def _attempts(self):
        attempts = QuizAttempt.objects.filter(quiz=self.quiz)
        if self.start_date:
            attempts = attempts.filter(submitted_at__gte=self.start_date)
        if self.end_date:
            attempts = attempts.filter(submitted_at__lte=self.end_date)
        return attempts

    def get_stats(self):
        attempts = self._attempts()
        stats = attempts.aggregate(
            total=Count('id'),
            avg_score=Avg('score'),
            avg_points=Avg('earned_points'),
            pass_count=Count('id', filter=Q(passed=True)),
            min_time=Min('time_taken'),
            max_time=Max('time_taken'),
            avg_time=Avg('time_taken'),
        )
        total = stats['total'] or 0
        pass_count = stats['pass_count'] or 0
        scores = [float(s) for s in attempts.values_list('score', flat=True)]

        return {
            'quiz_id': self.quiz.id,
            'title': self.quiz.title,
            'course': {
                'course_id': self.quiz.course_id,
                'title': self.quiz.course.title,
            },
            'submission_count': total,
            'average_score': round(float(stats['avg_score'] or 0), 2),
            'median_score': round(float(np.median(scores)), 2) if scores else 0,
            'pass_rate': round(pass_count / total * 100, 2) if total else 0,
            'pass_count': pass_count,
            'fail_count': total - pass_count,
            'total_points': float(self.quiz.total_points),
            'average_points_earned': round(float(stats['avg_points'] or 0), 2),
            'time_taken': {
                'min': stats['min_time'] or 0,
                'max': stats['max_time'] or 0,
                'average': round(float(stats['avg_time'] or 0), 2),
            },
            'created_at': self.quiz.created_at,
        }

    @classmethod
    def get_overview(cls, course_id=None, start_date=None, end_date=None):
        """Statistics for every quiz (optionally one course's) and a summary."""
        quizzes = Quiz.objects.select_related('course')
        if course_id:
            quizzes = quizzes.filter(course_id=course_id)

        quiz_stats = [cls(quiz, start_date, end_date).get_stats() for quiz in quizzes]
        total_submissions = sum(q['submission_count'] for q in quiz_stats)
        attempted = [q for q in quiz_stats if q['submission_count']]

        average_score = (
            round(sum(q['average_score'] * q['submission_count'] for q in quiz_stats) / total_submissions, 2)
            if total_submissions else 0
        )
        average_pass_rate = (
            round(sum(q['pass_rate'] for q in quiz_stats) / len(quiz_stats), 2)
            if quiz_stats else 0
        )

        participants = QuizAttempt.objects.filter(quiz__in=quizzes)
        if start_date:
            participants = participants.filter(submitted_at__gte=start_date)
        if end_date:
            participants = participants.filter(submitted_at__lte=end_date)
        total_participants = participants.values('student').distinct().count()

        return {
            'total_quizzes': len(quiz_stats),
            'total_submissions': total_submissions,
            'average_score': average_score,
            'average_pass_rate': average_pass_rate,
            'quizzes': quiz_stats,
            'summary': {
                'total_participants': total_participants,
                'submissions_per_participant': (
                    round(total_submissions / total_participants, 2) if total_participants else 0
                ),
                'most_difficult_quiz': min(attempted, key=lambda q: q['average_score']) if attempted else None,
                'easiest_quiz': max(attempted, key=lambda q: q['average_score']) if attempted else None,
            },
        }
