"""
Review routes.
"""
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import Response

from bootcamp_api.auth.dependencies import is_owner_or_admin, restrict_to
from bootcamp_api.errors import Forbidden, NotFound
from bootcamp_api.models.common import DataResponse, ListResponse
from bootcamp_api.models.review import ReviewCreate, ReviewInDB, ReviewResponse, ReviewUpdate
from bootcamp_api.models.user import Role, UserInDB
from bootcamp_api.services.firestore import REVIEWS, FirestoreService
from bootcamp_api.services.query_builder import build_query_plan

router = APIRouter()

reviewer = restrict_to(Role.USER, Role.ADMIN)


async def _get_review_or_404(firestore: FirestoreService, review_id: str) -> ReviewInDB:
    review = await firestore.get_review_by_id(review_id)
    if not review:
        raise NotFound("No review found with that ID")
    return review


@router.get("/reviews", response_model=ListResponse)
async def list_reviews(request: Request):
    plan = build_query_plan(request.query_params)
    reviews = await FirestoreService().run_query(REVIEWS, plan)
    return ListResponse(results=len(reviews), data=reviews)


@router.get("/bootcamps/{bootcamp_id}/reviews", response_model=ListResponse)
async def list_bootcamp_reviews(bootcamp_id: str, request: Request):
    plan = build_query_plan(request.query_params, base_filters={"bootcamp_id": bootcamp_id})
    reviews = await FirestoreService().run_query(REVIEWS, plan)
    return ListResponse(results=len(reviews), data=reviews)


@router.post(
    "/bootcamps/{bootcamp_id}/reviews",
    response_model=DataResponse[ReviewResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_review(
    bootcamp_id: str,
    payload: ReviewCreate,
    current_user: UserInDB = Depends(reviewer),
):
    """Review a bootcamp. One review per user per bootcamp."""
    firestore = FirestoreService()
    if not await firestore.get_bootcamp_by_id(bootcamp_id):
        raise NotFound("No bootcamp found with that ID")

    review = await firestore.create_review(
        bootcamp_id, current_user.id, payload.model_dump(mode="json")
    )
    return DataResponse(data=ReviewResponse(**review.model_dump()))


@router.get("/reviews/{review_id}", response_model=DataResponse[ReviewResponse])
async def get_review(review_id: str):
    review = await _get_review_or_404(FirestoreService(), review_id)
    return DataResponse(data=ReviewResponse(**review.model_dump()))


@router.patch("/reviews/{review_id}", response_model=DataResponse[ReviewResponse])
async def update_review(
    review_id: str,
    payload: ReviewUpdate,
    current_user: UserInDB = Depends(reviewer),
):
    firestore = FirestoreService()
    review = await _get_review_or_404(firestore, review_id)

    if not is_owner_or_admin(current_user, review.user_id):
        raise Forbidden("You are not authorized to update this review")

    updated = await firestore.update_review(
        review_id, payload.model_dump(mode="json", exclude_unset=True)
    )
    if updated is None:
        raise NotFound("No review found with that ID")

    return DataResponse(data=ReviewResponse(**updated.model_dump()))


@router.delete("/reviews/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_review(
    review_id: str,
    current_user: UserInDB = Depends(reviewer),
):
    firestore = FirestoreService()
    review = await _get_review_or_404(firestore, review_id)

    if not is_owner_or_admin(current_user, review.user_id):
        raise Forbidden("You are not authorized to delete this review")

    await firestore.delete_review(review_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
