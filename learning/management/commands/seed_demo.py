"""
Management command to set up demo data for the Learning Platform.
Creates a student, an instructor, one course with a module, and a quiz.
"""
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.contrib.auth.models import User
from rest_framework.authtoken.models import Token

from learning.models import Course, Module, CourseEnrollment, Quiz, Question, UserProfile


class Command(BaseCommand):
    help = 'Set up demo data for trying the quiz endpoints'

    def _user(self, username, password, role, **extra):
        user, created = User.objects.get_or_create(
            username=username,
            defaults={'email': f'{username}@example.com', 'is_active': True, **extra}
        )
        if created:
            user.set_password(password)
            user.save()
            user.profile.role = role
            user.profile.save()
            self.stdout.write(self.style.SUCCESS(f'Created {role}: {username} / {password}'))
        else:
            self.stdout.write(f'  {username} already exists')
        token, _ = Token.objects.get_or_create(user=user)
        return user, token

    def handle(self, *args, **options):
        self.stdout.write(self.style.NOTICE('Setting up Learning Platform demo data...'))

        student, student_token = self._user('student', 'student123', UserProfile.Role.STUDENT)
        instructor, instructor_token = self._user(
            'instructor', 'instructor123', UserProfile.Role.INSTRUCTOR, is_staff=True
        )

        course, _ = Course.objects.get_or_create(
            slug='world-geography',
            defaults={'title': 'World Geography', 'description': 'Countries, capitals and maps.'}
        )
        module, _ = Module.objects.get_or_create(course=course, title='Europe', defaults={'order': 1})
        CourseEnrollment.objects.get_or_create(course=course, student=student)

        quiz, created = Quiz.objects.get_or_create(
            title='European Capitals',
            course=course,
            module=module,
            defaults={
                'quiz_type': Quiz.QuizType.GRADED,
                'passing_score': Decimal('60'),
                'total_points': Decimal('15'),
                'max_attempts': 2,
                'is_published': True,
                'created_by': instructor,
            }
        )
        if created:
            Question.objects.bulk_create([
                Question(
                    quiz=quiz, order=1, title='Pick A', content='Which option is labelled A?',
                    question_type=Question.QuestionType.MULTIPLE_CHOICE, points=Decimal('10'),
                    options=[
                        {'id': 'A', 'text': 'A', 'is_correct': True},
                        {'id': 'B', 'text': 'B', 'is_correct': False},
                    ],
                    correct_answer='A',
                ),
                Question(
                    quiz=quiz, order=2, title='Capital of France', content='What is the capital of France?',
                    question_type=Question.QuestionType.SHORT_ANSWER, points=Decimal('5'),
                    correct_answer='Paris', explanation='Paris has been the capital since 987.',
                ),
            ])
            self.stdout.write(self.style.SUCCESS(f'Created quiz: {quiz.title}'))

        self.stdout.write('')
        self.stdout.write(self.style.SUCCESS('Demo data ready.'))
        self.stdout.write(f'  Student token:    {student_token.key}')
        self.stdout.write(f'  Instructor token: {instructor_token.key}')
        self.stdout.write(f'  Take the quiz:    GET /api/courses/{course.id}/quizzes/{quiz.id}/')
