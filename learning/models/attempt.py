from django.db import models
from django.contrib.auth.models import User
from django.utils import timezone


class QuizAttempt(models.Model):
    """
    One graded submission of a quiz by a student.

    Attempts are append-only: each submission creates a new row and the
    per-question results are a snapshot of what was graded at the time.
    """
    student = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='quiz_attempts',
        db_index=True
    )
    quiz = models.ForeignKey(
        'Quiz',
        on_delete=models.CASCADE,
        related_name='attempts',
        db_index=True
    )
    course = models.ForeignKey('Course', on_delete=models.CASCADE, related_name='quiz_attempts')
    module = models.ForeignKey('Module', on_delete=models.CASCADE, related_name='quiz_attempts')
    attempt_number = models.PositiveIntegerField()

    # [{"question_id", "user_answer", "correct_answer", "is_correct", "points", "earned_points"}]
    results = models.JSONField(default=list)
    score = models.DecimalField(max_digits=5, decimal_places=2)
    passed = models.BooleanField()
    earned_points = models.DecimalField(max_digits=7, decimal_places=2)
    total_points = models.DecimalField(max_digits=7, decimal_places=2)
    pending_review = models.PositiveIntegerField(default=0)
    time_taken = models.PositiveIntegerField(null=True, blank=True, help_text="Seconds")
    submitted_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ['attempt_number']
        indexes = [
            models.Index(fields=['student', 'quiz']),
            models.Index(fields=['student', 'course']),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'quiz', 'attempt_number'],
                name='unique_student_quiz_attempt'
            )
        ]

    def __str__(self):
        return f"{self.student.username} - {self.quiz.title} (Attempt {self.attempt_number})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Quiz attempts are append-only and cannot be modified.")
        super().save(*args, **kwargs)
