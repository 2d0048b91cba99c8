"""
Bootcamp routes, including radius search and cover images.
"""
from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from fastapi.responses import Response

from bootcamp_api.auth.dependencies import is_owner_or_admin, restrict_to
from bootcamp_api.config import get_settings
from bootcamp_api.errors import Forbidden, NotFound, ValidationError
from bootcamp_api.models.bootcamp import (
    BootcampCreate,
    BootcampDetailResponse,
    BootcampInDB,
    BootcampResponse,
    BootcampUpdate,
    slugify,
)
from bootcamp_api.models.common import DataResponse, ListResponse, StatusResponse
from bootcamp_api.models.course import CourseResponse
from bootcamp_api.models.review import ReviewResponse
from bootcamp_api.models.user import Role, UserInDB
from bootcamp_api.services.firestore import BOOTCAMPS, HIDDEN_FIELDS, FirestoreService
from bootcamp_api.services.geocoder import DistanceUnit, GeocoderService, distance_between
from bootcamp_api.services.images import COVER_IMAGE_SIZE, check_upload, resize_to_png
from bootcamp_api.services.query_builder import build_query_plan, strip_hidden
from bootcamp_api.services.storage import StorageService, cover_image_blob

settings = get_settings()
router = APIRouter()

publisher_or_admin = restrict_to(Role.PUBLISHER, Role.ADMIN)


async def _get_bootcamp_or_404(firestore: FirestoreService, bootcamp_id: str) -> BootcampInDB:
    bootcamp = await firestore.get_bootcamp_by_id(bootcamp_id)
    if not bootcamp:
        raise NotFound("No bootcamp found with that ID")
    return bootcamp


@router.get("", response_model=ListResponse)
async def list_bootcamps(request: Request):
    """
    List bootcamps.
    Supports filtering (`?housing=true`, `?average_cost[lte]=10000`), `sort`,
    `fields`, `page` and `limit` query parameters.
    """
    plan = build_query_plan(request.query_params)
    bootcamps = await FirestoreService().run_query(BOOTCAMPS, plan)
    return ListResponse(results=len(bootcamps), data=bootcamps)


@router.get("/radius/{zipcode}/{distance}/{unit}", response_model=ListResponse)
async def bootcamps_within(zipcode: str, distance: float, unit: DistanceUnit):
    """Bootcamps within `distance` miles (`mi`) or kilometres (`km`) of a zipcode."""
    if distance < 0:
        raise ValidationError("Distance must not be negative")

    center = await GeocoderService().geocode(zipcode)
    located = await FirestoreService().list_located_bootcamps()

    matches = []
    for bootcamp in located:
        lng, lat = bootcamp.location.coordinates[:2]
        if distance_between(center.latitude, center.longitude, lat, lng, unit.value) <= distance:
            matches.append(
                strip_hidden(bootcamp.model_dump(mode="json"), HIDDEN_FIELDS[BOOTCAMPS])
            )

    return ListResponse(results=len(matches), data=matches)


@router.post("", response_model=DataResponse[BootcampResponse], status_code=status.HTTP_201_CREATED)
async def create_bootcamp(
    payload: BootcampCreate,
    current_user: UserInDB = Depends(publisher_or_admin),
):
    """Publish a bootcamp. Publishers may own only one."""
    firestore = FirestoreService()

    if current_user.role != Role.ADMIN:
        if await firestore.get_bootcamp_by_user(current_user.id):
            raise ValidationError("You have already published a bootcamp")

    geocoded = await GeocoderService().geocode(payload.address)

    data = payload.model_dump(mode="json")
    data["slug"] = slugify(payload.name)
    data["location"] = geocoded.to_location().model_dump()

    bootcamp = await firestore.create_bootcamp(current_user.id, data)
    return DataResponse(data=BootcampResponse(**bootcamp.model_dump()))


@router.get("/{bootcamp_id}", response_model=DataResponse[BootcampDetailResponse])
async def get_bootcamp(bootcamp_id: str):
    """Get a bootcamp with its courses and reviews."""
    firestore = FirestoreService()
    bootcamp = await _get_bootcamp_or_404(firestore, bootcamp_id)

    courses = await firestore.list_courses_by_bootcamp(bootcamp_id)
    reviews = await firestore.list_reviews_by_bootcamp(bootcamp_id)

    return DataResponse(
        data=BootcampDetailResponse(
            **bootcamp.model_dump(),
            courses=[CourseResponse(**c.model_dump()) for c in courses],
            reviews=[ReviewResponse(**r.model_dump()) for r in reviews],
        )
    )


@router.patch("/{bootcamp_id}", response_model=DataResponse[BootcampResponse])
async def update_bootcamp(
    bootcamp_id: str,
    payload: BootcampUpdate,
    current_user: UserInDB = Depends(publisher_or_admin),
):
    """Update a bootcamp. Re-geocodes when the address changes."""
    firestore = FirestoreService()
    bootcamp = await _get_bootcamp_or_404(firestore, bootcamp_id)

    if not is_owner_or_admin(current_user, bootcamp.user_id):
        raise Forbidden("You are not authorized to update this bootcamp")

    updates = payload.model_dump(mode="json", exclude_unset=True)
    if updates.get("name"):
        updates["slug"] = slugify(updates["name"])
    if updates.get("address") and updates["address"] != bootcamp.address:
        geocoded = await GeocoderService().geocode(updates["address"])
        updates["location"] = geocoded.to_location().model_dump()

    updated = await firestore.update_bootcamp(bootcamp_id, updates)
    if updated is None:
        raise NotFound("No bootcamp found with that ID")

    return DataResponse(data=BootcampResponse(**updated.model_dump()))


@router.delete("/{bootcamp_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bootcamp(
    bootcamp_id: str,
    current_user: UserInDB = Depends(publisher_or_admin),
):
    """Delete a bootcamp along with its courses, reviews and cover image."""
    firestore = FirestoreService()
    bootcamp = await _get_bootcamp_or_404(firestore, bootcamp_id)

    if not is_owner_or_admin(current_user, bootcamp.user_id):
        raise Forbidden("You are not authorized to delete this bootcamp")

    if bootcamp.cover_image_path:
        await StorageService().delete_file(bootcamp.cover_image_path)

    await firestore.delete_bootcamp(bootcamp_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ==================== Cover Image ====================

@router.get("/{bootcamp_id}/coverimage")
async def get_cover_image(bootcamp_id: str):
    """Cover image as PNG."""
    bootcamp = await FirestoreService().get_bootcamp_by_id(bootcamp_id)
    if not bootcamp or not bootcamp.cover_image_path:
        raise NotFound("No bootcamp or coverImage found with that ID")

    png_bytes = await StorageService().download_file(bootcamp.cover_image_path)
    return Response(content=png_bytes, media_type="image/png")


@router.post("/{bootcamp_id}/coverimage", response_model=StatusResponse)
async def upload_cover_image(
    bootcamp_id: str,
    file: UploadFile = File(...),
    current_user: UserInDB = Depends(publisher_or_admin),
):
    """Upload a cover image, stored as a 1084x610 PNG."""
    firestore = FirestoreService()
    bootcamp = await _get_bootcamp_or_404(firestore, bootcamp_id)

    if not is_owner_or_admin(current_user, bootcamp.user_id):
        raise Forbidden("You are not authorized to upload coverImage for this bootcamp")

    data = await file.read()
    check_upload(file.content_type, data, settings.cover_image_max_bytes)
    png_bytes = resize_to_png(data, COVER_IMAGE_SIZE)

    storage_path = await StorageService().upload_bytes(png_bytes, cover_image_blob(bootcamp_id))
    await firestore.set_bootcamp_cover(bootcamp_id, storage_path)

    return StatusResponse()


@router.delete("/{bootcamp_id}/coverimage", response_model=StatusResponse)
async def delete_cover_image(
    bootcamp_id: str,
    current_user: UserInDB = Depends(publisher_or_admin),
):
    """Remove the cover image."""
    firestore = FirestoreService()
    bootcamp = await _get_bootcamp_or_404(firestore, bootcamp_id)

    if not is_owner_or_admin(current_user, bootcamp.user_id):
        raise Forbidden("You are not authorized to delete coverImage for this bootcamp")

    if bootcamp.cover_image_path:
        await StorageService().delete_file(bootcamp.cover_image_path)
        await firestore.set_bootcamp_cover(bootcamp_id, None)

    return StatusResponse()
