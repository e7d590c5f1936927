from decimal import Decimal

from django.db import models
from django.contrib.auth.models import User
from django.core.validators import MinValueValidator, MaxValueValidator


class Quiz(models.Model):
    class QuizType(models.TextChoices):
        PRACTICE = 'practice', 'Practice'
        GRADED = 'graded', 'Graded'
        ASSESSMENT = 'assessment', 'Assessment'

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    instructions = models.TextField(blank=True)

    course = models.ForeignKey(
        'Course',
        on_delete=models.CASCADE,
        related_name='quizzes',
        db_index=True
    )
    module = models.ForeignKey(
        'Module',
        on_delete=models.CASCADE,
        related_name='quizzes',
        db_index=True
    )
    lesson = models.ForeignKey(
        'Lesson',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='quizzes'
    )

    quiz_type = models.CharField(
        max_length=20,
        choices=QuizType.choices,
        default=QuizType.PRACTICE
    )
    passing_score = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal('60.00'),
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    total_points = models.DecimalField(
        max_digits=7,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(0)]
    )
    shuffle_questions = models.BooleanField(default=False)
    shuffle_options = models.BooleanField(default=False)
    show_correct_answers = models.BooleanField(default=True)
    allow_review = models.BooleanField(default=True)

    # Timing & availability
    due_date = models.DateTimeField(null=True, blank=True)
    time_limit = models.PositiveIntegerField(null=True, blank=True, help_text="Minutes")
    max_attempts = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    available_from = models.DateTimeField(null=True, blank=True)
    available_until = models.DateTimeField(null=True, blank=True)

    # Grading
    auto_grade = models.BooleanField(default=True)
    grading_criteria = models.TextField(blank=True)

    is_published = models.BooleanField(default=False, db_index=True)

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name='created_quizzes'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name_plural = 'quizzes'
        indexes = [
            models.Index(fields=['course', 'module']),
            models.Index(fields=['is_published', 'created_at']),
            models.Index(fields=['due_date']),
        ]

    def __str__(self):
        return self.title

    def compute_total_points(self):
        return self.questions.aggregate(total=models.Sum('points'))['total'] or Decimal('0')


class Question(models.Model):
    class QuestionType(models.TextChoices):
        MULTIPLE_CHOICE = 'multiple-choice', 'Multiple Choice'
        TRUE_FALSE = 'true-false', 'True/False'
        SHORT_ANSWER = 'short-answer', 'Short Answer'
        ESSAY = 'essay', 'Essay'
        MATCHING = 'matching', 'Matching'

    quiz = models.ForeignKey(
        'Quiz',
        on_delete=models.CASCADE,
        related_name='questions',
        db_index=True
    )
    title = models.CharField(max_length=300)
    content = models.TextField()
    question_type = models.CharField(
        max_length=20,
        choices=QuestionType.choices,
        db_index=True
    )
    # [{"id": "...", "text": "...", "is_correct": bool}]
    options = models.JSONField(default=list, blank=True)
    correct_answer = models.JSONField()
    points = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal('1.00'),
        validators=[MinValueValidator(0)]
    )
    explanation = models.TextField(blank=True)
    order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['order', 'id']
        indexes = [
            models.Index(fields=['quiz', 'order']),
        ]

    def __str__(self):
        return f"Q{self.order}: {self.title[:50]}"
