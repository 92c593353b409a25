"""Course registry module."""

from .models import Course
from .service import CourseService


__all__ = ["Course", "CourseService"]
