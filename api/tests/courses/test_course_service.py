"""Tests for the course registry."""

import pytest

from coursepass.core.exceptions import CourseNotFoundError
from coursepass.identity.service import UserNotFoundError


class TestCourseService:
    @pytest.mark.asyncio
    async def test_create_course(self, course_service, creator, clock):
        course = await course_service.create_course(creator.id, "Intro to NFTs")

        assert course.id is not None
        assert course.creator_id == creator.id
        assert course.is_published is False
        assert course.created_at == clock()

    @pytest.mark.asyncio
    async def test_create_course_unknown_creator(self, course_service):
        with pytest.raises(UserNotFoundError):
            await course_service.create_course(42, "Orphan")

    @pytest.mark.asyncio
    async def test_publish_and_list(self, course_service, creator, clock):
        draft = await course_service.create_course(creator.id, "Draft")
        older = await course_service.create_course(creator.id, "Older")
        clock.advance(hours=1)
        newer = await course_service.create_course(creator.id, "Newer")

        await course_service.set_published(older.id)
        await course_service.set_published(newer.id)

        listed = await course_service.list_published()
        assert [c.id for c in listed] == [newer.id, older.id]
        assert draft.id not in {c.id for c in listed}

    @pytest.mark.asyncio
    async def test_unpublish(self, course_service, course):
        await course_service.set_published(course.id, True)
        updated = await course_service.set_published(course.id, False)

        assert updated.is_published is False
        assert await course_service.list_published() == []

    @pytest.mark.asyncio
    async def test_publish_unknown_course(self, course_service):
        with pytest.raises(CourseNotFoundError):
            await course_service.set_published(404)

    def test_require_course(self, course_service, course):
        assert course_service.require_course(course.id) == course
        with pytest.raises(CourseNotFoundError):
            course_service.require_course(course.id + 1)
