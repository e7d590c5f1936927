import uuid
from decimal import Decimal

from django.db import transaction
from rest_framework import serializers

from learning.models import Quiz, Question, QuizAttempt


class QuestionOptionSerializer(serializers.Serializer):
    id = serializers.CharField(required=False, max_length=64)
    text = serializers.CharField()
    is_correct = serializers.BooleanField(default=False)


class QuestionSerializer(serializers.ModelSerializer):
    # Writable so quiz updates can match existing questions.
    id = serializers.IntegerField(required=False)
    options = QuestionOptionSerializer(many=True, required=False)
    correct_answer = serializers.JSONField()

    class Meta:
        model = Question
        fields = [
            'id', 'title', 'content', 'question_type', 'options',
            'correct_answer', 'points', 'explanation', 'order'
        ]

    def validate_options(self, options):
        for option in options:
            option.setdefault('id', uuid.uuid4().hex[:12])
        ids = [option['id'] for option in options]
        if len(ids) != len(set(ids)):
            raise serializers.ValidationError("Option ids must be unique.")
        return options

    def validate(self, data):
        if data.get('correct_answer') is None:
            raise serializers.ValidationError({'correct_answer': "A correct answer is required."})
        question_type = data.get('question_type')
        if question_type == Question.QuestionType.MULTIPLE_CHOICE and not data.get('options'):
            raise serializers.ValidationError({'options': "Multiple choice questions need options."})
        if question_type == Question.QuestionType.TRUE_FALSE and \
                str(data['correct_answer']).lower() not in ('true', 'false'):
            raise serializers.ValidationError({'correct_answer': "Must be true or false."})
        return data


class QuizListSerializer(serializers.ModelSerializer):
    course_title = serializers.CharField(source='course.title', read_only=True)
    question_count = serializers.IntegerField(source='questions.count', read_only=True)

    class Meta:
        model = Quiz
        fields = [
            'id', 'title', 'course', 'course_title', 'module', 'quiz_type',
            'passing_score', 'total_points', 'max_attempts', 'is_published',
            'question_count', 'due_date', 'created_at'
        ]


class QuizSerializer(serializers.ModelSerializer):
    """
    Full quiz with nested questions, for instructors.

    ``total_points`` is derived from the questions when omitted and must
    match their sum when given.
    """
    questions = QuestionSerializer(many=True, required=False)
    total_points = serializers.DecimalField(max_digits=7, decimal_places=2, required=False, min_value=0)

    class Meta:
        model = Quiz
        fields = [
            'id', 'title', 'description', 'instructions',
            'course', 'module', 'lesson', 'questions',
            'quiz_type', 'passing_score', 'total_points',
            'shuffle_questions', 'shuffle_options', 'show_correct_answers', 'allow_review',
            'due_date', 'time_limit', 'max_attempts', 'available_from', 'available_until',
            'auto_grade', 'grading_criteria', 'is_published',
            'created_by', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_by', 'created_at', 'updated_at']

    def validate_title(self, value):
        if len(value.strip()) < 3:
            raise serializers.ValidationError("Title must be at least 3 characters.")
        return value

    def validate(self, data):
        course = data.get('course', getattr(self.instance, 'course', None))
        module = data.get('module', getattr(self.instance, 'module', None))
        lesson = data.get('lesson', getattr(self.instance, 'lesson', None))
        if module and course and module.course_id != course.id:
            raise serializers.ValidationError({'module': "Module does not belong to this course."})
        if lesson and module and lesson.module_id != module.id:
            raise serializers.ValidationError({'lesson': "Lesson does not belong to this module."})

        available_from = data.get('available_from', getattr(self.instance, 'available_from', None))
        available_until = data.get('available_until', getattr(self.instance, 'available_until', None))
        if available_from and available_until and available_from > available_until:
            raise serializers.ValidationError({'available_until': "Must be after available_from."})

        if 'questions' in data and self.instance is not None:
            submitted_ids = {q['id'] for q in data['questions'] if q.get('id') is not None}
            unknown = submitted_ids - set(self.instance.questions.values_list('pk', flat=True))
            if unknown:
                raise serializers.ValidationError({
                    'questions': f"Question {min(unknown)} does not belong to this quiz."
                })

        if 'questions' in data:
            expected = sum((Decimal(q.get('points', Decimal('1'))) for q in data['questions']), Decimal('0'))
        elif self.instance is not None:
            expected = self.instance.compute_total_points()
        else:
            expected = Decimal('0')

        total_points = data.get('total_points')
        if total_points is None:
            if 'questions' in data or self.instance is None:
                data['total_points'] = expected
        elif Decimal(total_points) != expected:
            raise serializers.ValidationError({
                'total_points': f"Must equal the sum of question points ({expected})."
            })
        return data

    @transaction.atomic
    def create(self, validated_data):
        questions = validated_data.pop('questions', [])
        quiz = Quiz.objects.create(**validated_data)
        self._write_questions(quiz, questions)
        return quiz

    @transaction.atomic
    def update(self, instance, validated_data):
        questions = validated_data.pop('questions', None)
        quiz = super().update(instance, validated_data)
        if questions is not None:
            self._sync_questions(quiz, questions)
        return quiz

    @staticmethod
    def _write_questions(quiz, questions):
        Question.objects.bulk_create([
            Question(quiz=quiz, **{k: v for k, v in question.items() if k != 'id'})
            for question in questions
        ])

    @classmethod
    def _sync_questions(cls, quiz, questions):
        """
        Update listed questions in place by id, add those without one and
        delete the rest. Question ids recorded in earlier attempts stay valid
        for every question that is kept.
        """
        existing = {question.pk: question for question in quiz.questions.all()}
        kept, added = set(), []
        for data in questions:
            question = existing.get(data.get('id'))
            if question is None:
                added.append(data)
                continue
            for field, value in data.items():
                if field != 'id':
                    setattr(question, field, value)
            question.save()
            kept.add(question.pk)

        quiz.questions.exclude(pk__in=kept).delete()
        cls._write_questions(quiz, added)


class SubmitQuizSerializer(serializers.Serializer):
    answers = serializers.DictField(child=serializers.JSONField(allow_null=True), allow_empty=True)
    time_taken = serializers.IntegerField(required=False, allow_null=True, min_value=0)


class QuizStatsQuerySerializer(serializers.Serializer):
    course = serializers.IntegerField(required=False, min_value=1)
    start_date = serializers.DateTimeField(required=False)
    end_date = serializers.DateTimeField(required=False)

    def validate(self, data):
        if data.get('start_date') and data.get('end_date') and data['start_date'] > data['end_date']:
            raise serializers.ValidationError({'end_date': "Must be after start_date."})
        return data


class QuizAttemptListSerializer(serializers.ModelSerializer):
    quiz_title = serializers.CharField(source='quiz.title', read_only=True)
    score = serializers.FloatField(read_only=True)

    class Meta:
        model = QuizAttempt
        fields = [
            'id', 'quiz', 'quiz_title', 'course', 'module', 'attempt_number',
            'score', 'passed', 'time_taken', 'submitted_at'
        ]
