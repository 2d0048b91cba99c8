"""
Course routes.
Courses are listed globally under /courses or per bootcamp under
/bootcamps/{bootcamp_id}/courses.
"""
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import Response

from bootcamp_api.auth.dependencies import is_owner_or_admin, restrict_to
from bootcamp_api.errors import Forbidden, NotFound
from bootcamp_api.models.common import DataResponse, ListResponse
from bootcamp_api.models.course import CourseCreate, CourseInDB, CourseResponse, CourseUpdate
from bootcamp_api.models.user import Role, UserInDB
from bootcamp_api.services.firestore import COURSES, FirestoreService
from bootcamp_api.services.query_builder import build_query_plan

router = APIRouter()

publisher_or_admin = restrict_to(Role.PUBLISHER, Role.ADMIN)


async def _get_course_or_404(firestore: FirestoreService, course_id: str) -> CourseInDB:
    course = await firestore.get_course_by_id(course_id)
    if not course:
        raise NotFound("No course found with that ID")
    return course


@router.get("/courses", response_model=ListResponse)
async def list_courses(request: Request):
    """List all courses (filter/sort/fields/page/limit query parameters)."""
    plan = build_query_plan(request.query_params)
    courses = await FirestoreService().run_query(COURSES, plan)
    return ListResponse(results=len(courses), data=courses)


@router.get("/bootcamps/{bootcamp_id}/courses", response_model=ListResponse)
async def list_bootcamp_courses(bootcamp_id: str, request: Request):
    """List the courses of one bootcamp."""
    plan = build_query_plan(request.query_params, base_filters={"bootcamp_id": bootcamp_id})
    courses = await FirestoreService().run_query(COURSES, plan)
    return ListResponse(results=len(courses), data=courses)


@router.post(
    "/bootcamps/{bootcamp_id}/courses",
    response_model=DataResponse[CourseResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_course(
    bootcamp_id: str,
    payload: CourseCreate,
    current_user: UserInDB = Depends(publisher_or_admin),
):
    """Add a course to a bootcamp the caller owns."""
    firestore = FirestoreService()
    bootcamp = await firestore.get_bootcamp_by_id(bootcamp_id)
    if not bootcamp:
        raise NotFound("No bootcamp found with that ID")

    if not is_owner_or_admin(current_user, bootcamp.user_id):
        raise Forbidden("You are not authorized to add a course to this bootcamp")

    course = await firestore.create_course(
        bootcamp_id, current_user.id, payload.model_dump(mode="json")
    )
    return DataResponse(data=CourseResponse(**course.model_dump()))


@router.get("/courses/{course_id}", response_model=DataResponse[CourseResponse])
async def get_course(course_id: str):
    """Get course details by ID."""
    course = await _get_course_or_404(FirestoreService(), course_id)
    return DataResponse(data=CourseResponse(**course.model_dump()))


@router.patch("/courses/{course_id}", response_model=DataResponse[CourseResponse])
async def update_course(
    course_id: str,
    payload: CourseUpdate,
    current_user: UserInDB = Depends(publisher_or_admin),
):
    """Update a course."""
    firestore = FirestoreService()
    course = await _get_course_or_404(firestore, course_id)

    if not is_owner_or_admin(current_user, course.user_id):
        raise Forbidden("You are not authorized to update this course")

    updated = await firestore.update_course(
        course_id, payload.model_dump(mode="json", exclude_unset=True)
    )
    if updated is None:
        raise NotFound("No course found with that ID")

    return DataResponse(data=CourseResponse(**updated.model_dump()))


@router.delete("/courses/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_course(
    course_id: str,
    current_user: UserInDB = Depends(publisher_or_admin),
):
    """Delete a course."""
    firestore = FirestoreService()
    course = await _get_course_or_404(firestore, course_id)

    if not is_owner_or_admin(current_user, course.user_id):
        raise Forbidden("You are not authorized to delete this course")

    await firestore.delete_course(course_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
