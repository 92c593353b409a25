"""Course registry service.

Holds just enough of the catalogue for access control: who created a
course and whether it is listed.
"""

from typing import TYPE_CHECKING

from coursepass.core.clock import Clock, utc_now
from coursepass.core.exceptions import CourseNotFoundError
from coursepass.core.logging import get_logger
from coursepass.identity.service import UserNotFoundError

from .models import Course


if TYPE_CHECKING:
    from coursepass.core.database import Storage


logger = get_logger(__name__)


class CourseService:
    """Service for course registration and publishing."""

    def __init__(self, store: "Storage", clock: Clock = utc_now):
        self.store = store
        self.clock = clock

    def get_course(self, course_id: int) -> Course | None:
        return self.store.get_course(course_id)

    def require_course(self, course_id: int) -> Course:
        """Get a course or raise ``CourseNotFoundError``."""
        course = self.store.get_course(course_id)
        if course is None:
            raise CourseNotFoundError(course_id)
        return course

    async def create_course(self, creator_id: int, title: str) -> Course:
        """Register a course for an existing user.

        Raises:
            UserNotFoundError: If the creator does not exist
        """
        if self.store.get_user(creator_id) is None:
            raise UserNotFoundError(creator_id)

        course = self.store.insert_course(
            Course(creator_id=creator_id, title=title, created_at=self.clock())
        )
        logger.info("course_created", course_id=course.id, creator_id=creator_id)
        return course

    async def set_published(self, course_id: int, is_published: bool = True) -> Course:
        """Change the listing state of a course. Access rules are unaffected."""
        course = self.store.set_course_published(course_id, is_published)
        if course is None:
            raise CourseNotFoundError(course_id)
        logger.info("course_publish_changed", course_id=course_id, is_published=is_published)
        return course

    async def list_published(self) -> list[Course]:
        courses = [c for c in self.store.list_courses() if c.is_published]
        return sorted(courses, key=lambda c: (c.created_at, c.id), reverse=True)
