"""HTTP endpoints for the course registry."""

from fastapi import APIRouter, status

from coursepass.core.exceptions import CourseNotFoundError, CoursePassError

from .dependencies import CourseServiceDep, handle_course_error
from .schemas import (
    CourseListResponse,
    CourseResponse,
    CreateCourseRequest,
    PublishCourseRequest,
)


router = APIRouter(prefix="/v1/courses", tags=["courses"])


@router.post(
    "",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a course",
)
async def create_course(
    request: CreateCourseRequest,
    service: CourseServiceDep,
) -> CourseResponse:
    try:
        course = await service.create_course(
            creator_id=request.creator_id, title=request.title
        )
    except CoursePassError as e:
        raise handle_course_error(e) from e
    return CourseResponse.model_validate(course)


@router.get("", response_model=CourseListResponse, summary="List published courses")
async def list_courses(service: CourseServiceDep) -> CourseListResponse:
    courses = await service.list_published()
    items = [CourseResponse.model_validate(c) for c in courses]
    return CourseListResponse(items=items, total=len(items))


@router.get("/{course_id}", response_model=CourseResponse, summary="Get a course")
async def get_course(course_id: int, service: CourseServiceDep) -> CourseResponse:
    course = service.get_course(course_id)
    if course is None:
        raise handle_course_error(CourseNotFoundError(course_id))
    return CourseResponse.model_validate(course)


@router.post(
    "/{course_id}/publish",
    response_model=CourseResponse,
    summary="Publish or unpublish a course",
)
async def publish_course(
    course_id: int,
    service: CourseServiceDep,
    request: PublishCourseRequest | None = None,
) -> CourseResponse:
    is_published = request.is_published if request else True
    try:
        course = await service.set_published(course_id, is_published)
    except CoursePassError as e:
        raise handle_course_error(e) from e
    return CourseResponse.model_validate(course)
