"""
User management routes.
/me and /avatar act on the logged-in user; everything else is admin only.
"""
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, File, Request, UploadFile, status
from fastapi.responses import Response
from pydantic import ValidationError as PydanticValidationError

from bootcamp_api.auth.dependencies import get_current_user, restrict_to
from bootcamp_api.auth.utils import hash_password
from bootcamp_api.config import get_settings
from bootcamp_api.errors import NotFound, UpstreamFailure, ValidationError
from bootcamp_api.models.common import DataResponse, ListResponse, StatusResponse
from bootcamp_api.models.user import (
    Role,
    UserCreate,
    UserInDB,
    UserResponse,
    UserUpdate,
    UserUpdateMe,
)
from bootcamp_api.services.email import EmailService
from bootcamp_api.services.firestore import BOOTCAMPS, COURSES, REVIEWS, USERS, FirestoreService
from bootcamp_api.services.images import AVATAR_SIZE, check_upload, resize_to_png
from bootcamp_api.services.query_builder import build_query_plan
from bootcamp_api.services.storage import StorageService, avatar_blob

settings = get_settings()
logger = logging.getLogger(__name__)
router = APIRouter()

admin_only = restrict_to(Role.ADMIN)

SELF_EDITABLE_FIELDS = {"name", "email"}


async def _get_user_or_404(firestore: FirestoreService, user_id: str) -> UserInDB:
    user = await firestore.get_user_by_id(user_id)
    if not user:
        raise NotFound("No user found with that ID")
    return user


async def _remove_user(firestore: FirestoreService, user: UserInDB) -> None:
    storage = StorageService()
    if user.avatar_path:
        await storage.delete_file(user.avatar_path)
    for bootcamp in await firestore.list_bootcamps_by_user(user.id):
        if bootcamp.cover_image_path:
            await storage.delete_file(bootcamp.cover_image_path)
    await firestore.delete_user(user.id)


# ==================== Avatar helpers ====================

async def _avatar_response(user: UserInDB, missing: str) -> Response:
    if not user.avatar_path:
        raise NotFound(missing)
    png_bytes = await StorageService().download_file(user.avatar_path)
    return Response(content=png_bytes, media_type="image/png")


async def _store_avatar(firestore: FirestoreService, user_id: str, file: UploadFile) -> None:
    data = await file.read()
    check_upload(file.content_type, data, settings.avatar_max_bytes)
    png_bytes = resize_to_png(data, AVATAR_SIZE)

    storage_path = await StorageService().upload_bytes(png_bytes, avatar_blob(user_id))
    await firestore.set_user_avatar(user_id, storage_path)


async def _drop_avatar(firestore: FirestoreService, user: UserInDB) -> None:
    if user.avatar_path:
        await StorageService().delete_file(user.avatar_path)
        await firestore.set_user_avatar(user.id, None)


# ==================== Current user ====================

@router.get("/me", response_model=DataResponse[UserResponse])
async def get_me(current_user: UserInDB = Depends(get_current_user)):
    """
    Get current authenticated user info.
    """
    return DataResponse(data=UserResponse(**current_user.model_dump()))


@router.patch("/me", response_model=DataResponse[UserResponse])
async def update_me(
    payload: Dict[str, Any] = Body(...),
    current_user: UserInDB = Depends(get_current_user),
):
    """Update own name and/or email. Passwords go through /updatePassword."""
    if not set(payload) <= SELF_EDITABLE_FIELDS:
        raise ValidationError("Invalid updates!")

    try:
        updates = UserUpdateMe(**payload).model_dump(exclude_unset=True)
    except PydanticValidationError as e:
        raise ValidationError(e.errors()[0]["msg"])
    user = await FirestoreService().update_user(current_user.id, updates)
    if user is None:
        raise NotFound("No user found with that ID")
    return DataResponse(data=UserResponse(**user.model_dump()))


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_me(current_user: UserInDB = Depends(get_current_user)):
    """Delete own account and everything published with it."""
    await _remove_user(FirestoreService(), current_user)

    try:
        await EmailService().send_email(
            current_user.email,
            "Sorry to see you go!",
            f"Goodbye, {current_user.name}. I hope to see you back sometime soon.",
        )
    except UpstreamFailure:
        logger.warning("Goodbye email not sent to user %s", current_user.id)

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/avatar")
async def get_my_avatar(current_user: UserInDB = Depends(get_current_user)):
    return await _avatar_response(current_user, "No avatar associated with the user")


@router.post("/avatar", response_model=StatusResponse)
async def upload_my_avatar(
    file: UploadFile = File(...),
    current_user: UserInDB = Depends(get_current_user),
):
    """Upload own avatar, stored as a 500x500 PNG."""
    await _store_avatar(FirestoreService(), current_user.id, file)
    return StatusResponse()


@router.delete("/avatar", response_model=StatusResponse)
async def delete_my_avatar(current_user: UserInDB = Depends(get_current_user)):
    await _drop_avatar(FirestoreService(), current_user)
    return StatusResponse()


# ==================== Admin ====================

@router.get("", response_model=ListResponse, dependencies=[Depends(admin_only)])
async def list_users(request: Request):
    """List users (filter/sort/fields/page/limit query parameters)."""
    plan = build_query_plan(request.query_params)
    users = await FirestoreService().run_query(USERS, plan)
    return ListResponse(results=len(users), data=users)


@router.post(
    "",
    response_model=DataResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_user(payload: UserCreate, current_user: UserInDB = Depends(admin_only)):
    """Create a user with any role."""
    user = await FirestoreService().create_user(
        name=payload.name,
        email=payload.email,
        password_hash=hash_password(payload.password),
        role=payload.role.value,
        created_by=current_user.id,
    )
    return DataResponse(data=UserResponse(**user.model_dump()))


@router.get("/{user_id}", dependencies=[Depends(admin_only)])
async def get_user(user_id: str):
    """User profile with the bootcamps, courses and reviews they created."""
    firestore = FirestoreService()
    user = await _get_user_or_404(firestore, user_id)

    related: Dict[str, List[Dict[str, Any]]] = {
        "bootcamps": await firestore.list_by_user(BOOTCAMPS, user_id),
        "courses": await firestore.list_by_user(COURSES, user_id),
        "reviews": await firestore.list_by_user(REVIEWS, user_id),
    }

    data = UserResponse(**user.model_dump()).model_dump(mode="json")
    data.update(related)
    return {"status": "success", "data": data}


@router.patch(
    "/{user_id}",
    response_model=DataResponse[UserResponse],
    dependencies=[Depends(admin_only)],
)
async def update_user(user_id: str, payload: UserUpdate):
    firestore = FirestoreService()
    await _get_user_or_404(firestore, user_id)

    updates = payload.model_dump(mode="json", exclude_unset=True)
    user = await firestore.update_user(user_id, updates)
    if user is None:
        raise NotFound("No user found with that ID")

    return DataResponse(data=UserResponse(**user.model_dump()))


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(admin_only)],
)
async def delete_user(user_id: str):
    firestore = FirestoreService()
    user = await _get_user_or_404(firestore, user_id)

    await _remove_user(firestore, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{user_id}/avatar", dependencies=[Depends(admin_only)])
async def get_user_avatar(user_id: str):
    user = await _get_user_or_404(FirestoreService(), user_id)
    return await _avatar_response(user, "No user or avatar found with that ID")


@router.post(
    "/{user_id}/avatar",
    response_model=StatusResponse,
    dependencies=[Depends(admin_only)],
)
async def upload_user_avatar(user_id: str, file: UploadFile = File(...)):
    firestore = FirestoreService()
    await _get_user_or_404(firestore, user_id)
    await _store_avatar(firestore, user_id, file)
    return StatusResponse()


@router.delete(
    "/{user_id}/avatar",
    response_model=StatusResponse,
    dependencies=[Depends(admin_only)],
)
async def delete_user_avatar(user_id: str):
    firestore = FirestoreService()
    user = await _get_user_or_404(firestore, user_id)
    await _drop_avatar(firestore, user)
    return StatusResponse()
