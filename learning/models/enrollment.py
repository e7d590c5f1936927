"""Course enrollment records consulted before any quiz is served."""
from django.db import models
from django.contrib.auth.models import User


class CourseEnrollment(models.Model):
    """Tracks which students are enrolled in which courses."""
    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        COMPLETED = 'completed', 'Completed'
        SUSPENDED = 'suspended', 'Suspended'
        DROPPED = 'dropped', 'Dropped'

    ENROLLED_STATUSES = (Status.ACTIVE, Status.COMPLETED)

    course = models.ForeignKey('Course', on_delete=models.CASCADE, related_name='enrollments')
    student = models.ForeignKey(User, on_delete=models.CASCADE, related_name='course_enrollments')
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    enrolled_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-enrolled_at']
        constraints = [
            models.UniqueConstraint(fields=['course', 'student'], name='unique_course_student')
        ]

    def __str__(self):
        return f"{self.student.username} - {self.course.title}"

    @property
    def is_enrolled(self):
        return self.status in self.ENROLLED_STATUSES
