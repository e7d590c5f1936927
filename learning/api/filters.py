import django_filters

from learning.models import QuizAttempt


class QuizAttemptFilter(django_filters.FilterSet):
    course_id = django_filters.NumberFilter(field_name='course_id')
    quiz_id = django_filters.NumberFilter(field_name='quiz_id')

    class Meta:
        model = QuizAttempt
        fields = ['course_id', 'quiz_id', 'passed']
