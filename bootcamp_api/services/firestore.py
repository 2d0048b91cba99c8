"""
Firestore database service.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Iterable

from google.cloud import firestore
from google.oauth2 import service_account

from bootcamp_api.config import get_settings
from bootcamp_api.errors import Conflict
from bootcamp_api.models.user import UserInDB
from bootcamp_api.models.bootcamp import BootcampInDB
from bootcamp_api.models.course import CourseInDB
from bootcamp_api.models.review import ReviewInDB
from bootcamp_api.services.query_builder import (
    Direction,
    FilterCondition,
    Operator,
    QueryPlan,
    strip_hidden,
)

settings = get_settings()
logger = logging.getLogger(__name__)

USERS = "users"
BOOTCAMPS = "bootcamps"
COURSES = "courses"
REVIEWS = "reviews"

# Never returned by the API, even when explicitly selected with ?fields=
HIDDEN_FIELDS = {
    USERS: frozenset({
        "password_hash",
        "password_changed_at",
        "tokens",
        "password_reset_token",
        "password_reset_expires",
        "avatar_path",
    }),
    BOOTCAMPS: frozenset({"cover_image_path"}),
    COURSES: frozenset(),
    REVIEWS: frozenset(),
}

_FIRESTORE_OPERATORS = {
    Operator.EQ: "==",
    Operator.GT: ">",
    Operator.GTE: ">=",
    Operator.LT: "<",
    Operator.LTE: "<=",
    Operator.IN: "in",
}

# List-valued fields; equality and `in` filters on these test membership
ARRAY_FIELDS = {
    USERS: frozenset({"tokens"}),
    BOOTCAMPS: frozenset({"careers"}),
    COURSES: frozenset(),
    REVIEWS: frozenset(),
}

_ARRAY_OPERATORS = {
    Operator.EQ: "array_contains",
    Operator.IN: "array_contains_any",
}


def _firestore_operator(collection: str, condition: FilterCondition) -> str:
    if (
        condition.field in ARRAY_FIELDS.get(collection, frozenset())
        and condition.op in _ARRAY_OPERATORS
    ):
        return _ARRAY_OPERATORS[condition.op]
    return _FIRESTORE_OPERATORS[condition.op]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class FirestoreService:
    """Service for Firestore database operations."""

    def __init__(self):
        """Initialize Firestore client."""
        if settings.google_application_credentials:
            credentials = service_account.Credentials.from_service_account_file(
                settings.google_application_credentials
            )
            self.db = firestore.Client(
                project=settings.gcp_project_id,
                credentials=credentials
            )
        else:
            # Use default credentials (for local development with gcloud auth)
            self.db = firestore.Client(project=settings.gcp_project_id)

    # ==================== Query Operations ====================

    async def run_query(self, collection: str, plan: QueryPlan) -> List[Dict[str, Any]]:
        """
        Execute a QueryPlan against a collection.

        Returns plain dicts (possibly partial when the plan has a projection)
        with hidden fields removed and the document id always present.
        """
        query = self.db.collection(collection)
        try:
            for condition in plan.filters:
                if condition.op == Operator.IN and not condition.value:
                    return []
                query = query.where(
                    condition.field, _firestore_operator(collection, condition), condition.value
                )
        except ValueError:
            # Not a usable field path; such a field cannot match anything.
            logger.info("Unfilterable field in query on %s", collection)
            return []

        for key in plan.sort:
            direction = (
                firestore.Query.DESCENDING
                if key.direction == Direction.DESCENDING
                else firestore.Query.ASCENDING
            )
            query = query.order_by(key.field, direction=direction)

        if plan.projection:
            query = query.select(list(plan.projection))

        query = query.offset(plan.skip).limit(plan.limit)

        hidden = HIDDEN_FIELDS.get(collection, frozenset())
        documents = []
        for doc in query.stream():
            data = doc.to_dict()
            data["id"] = doc.id
            documents.append(strip_hidden(data, hidden))
        return documents

    async def list_by_user(self, collection: str, user_id: str) -> List[Dict[str, Any]]:
        """Every document in `collection` owned by a user, newest first and unpaged."""
        hidden = HIDDEN_FIELDS.get(collection, frozenset())
        documents = [strip_hidden(data, hidden) for data in self._find(collection, user_id=user_id)]
        documents.sort(
            key=lambda data: (data.get("created_at") is not None, data.get("created_at")),
            reverse=True,
        )
        return documents

    def _get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        doc = self.db.collection(collection).document(doc_id).get()
        if doc.exists:
            return doc.to_dict()
        return None

    def _find(self, collection: str, **equals: Any) -> List[Dict[str, Any]]:
        query = self.db.collection(collection)
        for field, value in equals.items():
            query = query.where(field, "==", value)
        return [doc.to_dict() for doc in query.stream()]

    def _update(self, collection: str, doc_id: str, updates: Dict[str, Any]) -> bool:
        doc_ref = self.db.collection(collection).document(doc_id)
        doc = doc_ref.get()
        if not doc.exists:
            return False

        doc_ref.update({**updates, "updated_at": _now()})
        return True

    def _delete(self, collection: str, doc_id: str) -> bool:
        doc_ref = self.db.collection(collection).document(doc_id)
        doc = doc_ref.get()
        if not doc.exists:
            return False

        doc_ref.delete()
        return True

    # ==================== User Operations ====================

    async def create_user(
        self,
        name: str,
        email: str,
        password_hash: str,
        role: str = "user",
        created_by: Optional[str] = None
    ) -> UserInDB:
        """Create a new user."""
        if self._find(USERS, email=email):
            raise Conflict("An account with that email already exists")

        user_id = str(uuid.uuid4())
        user_data = {
            "id": user_id,
            "name": name,
            "email": email,
            "role": role,
            "password_hash": password_hash,
            "password_changed_at": None,
            "tokens": [],
            "password_reset_token": None,
            "password_reset_expires": None,
            "avatar_path": None,
            "created_at": _now(),
            "updated_at": None,
            "created_by": created_by,
        }

        self.db.collection(USERS).document(user_id).set(user_data)
        logger.info("Created user %s with role %s", user_id, role)

        return UserInDB(**user_data)

    async def get_user_by_id(self, user_id: str) -> Optional[UserInDB]:
        """Get user by ID."""
        data = self._get(USERS, user_id)
        return UserInDB(**data) if data else None

    async def get_user_by_email(self, email: str) -> Optional[UserInDB]:
        """Get user by email."""
        query = self.db.collection(USERS).where("email", "==", email.lower()).limit(1)
        docs = query.stream()

        for doc in docs:
            return UserInDB(**doc.to_dict())
        return None

    async def get_user_by_reset_token(self, token_hash: str) -> Optional[UserInDB]:
        """Get the user holding an unexpired reset token with this hash."""
        for data in self._find(USERS, password_reset_token=token_hash):
            expires = data.get("password_reset_expires")
            if expires and expires > _now():
                return UserInDB(**data)
        return None

    async def update_user(self, user_id: str, updates: Dict[str, Any]) -> Optional[UserInDB]:
        """Update profile fields. Email must stay unique."""
        email = updates.get("email")
        if email:
            if any(u["id"] != user_id for u in self._find(USERS, email=email)):
                raise Conflict("An account with that email already exists")

        if not self._update(USERS, user_id, updates):
            return None
        return await self.get_user_by_id(user_id)

    async def add_session_token(
        self, user_id: str, token: str, prune: Iterable[str] = ()
    ) -> None:
        """Append a session token, dropping `prune` tokens first."""
        doc_ref = self.db.collection(USERS).document(user_id)
        prune = list(prune)
        if prune:
            doc_ref.update({"tokens": firestore.ArrayRemove(prune)})
        doc_ref.update({"tokens": firestore.ArrayUnion([token])})

    async def remove_session_token(self, user_id: str, token: str) -> None:
        doc_ref = self.db.collection(USERS).document(user_id)
        doc_ref.update({"tokens": firestore.ArrayRemove([token])})

    async def clear_session_tokens(self, user_id: str) -> None:
        doc_ref = self.db.collection(USERS).document(user_id)
        doc_ref.update({"tokens": []})

    async def set_password_reset(
        self, user_id: str, token_hash: str, expires_at: datetime
    ) -> None:
        doc_ref = self.db.collection(USERS).document(user_id)
        doc_ref.update({
            "password_reset_token": token_hash,
            "password_reset_expires": expires_at,
        })

    async def clear_password_reset(self, user_id: str) -> None:
        doc_ref = self.db.collection(USERS).document(user_id)
        doc_ref.update({
            "password_reset_token": None,
            "password_reset_expires": None,
        })

    async def set_password(
        self, user_id: str, password_hash: str, changed_at: datetime
    ) -> None:
        """Replace the credential and consume any pending reset token."""
        self._update(USERS, user_id, {
            "password_hash": password_hash,
            "password_changed_at": changed_at,
            "password_reset_token": None,
            "password_reset_expires": None,
        })

    async def set_user_avatar(self, user_id: str, avatar_path: Optional[str]) -> bool:
        return self._update(USERS, user_id, {"avatar_path": avatar_path})

    async def delete_user(self, user_id: str) -> bool:
        """Delete a user and the bootcamps they published."""
        if self._get(USERS, user_id) is None:
            return False

        for bootcamp in await self.list_bootcamps_by_user(user_id):
            await self.delete_bootcamp(bootcamp.id)

        return self._delete(USERS, user_id)

    # ==================== Bootcamp Operations ====================

    async def create_bootcamp(self, user_id: str, data: Dict[str, Any]) -> BootcampInDB:
        """Create a new bootcamp. Names are unique."""
        if self._find(BOOTCAMPS, name=data["name"]):
            raise Conflict("A bootcamp with that name already exists")

        bootcamp_id = str(uuid.uuid4())
        bootcamp_data = {
            **data,
            "id": bootcamp_id,
            "average_rating": None,
            "average_cost": None,
            "cover_image_path": None,
            "user_id": user_id,
            "created_at": _now(),
            "updated_at": None,
        }

        self.db.collection(BOOTCAMPS).document(bootcamp_id).set(bootcamp_data)

        return BootcampInDB(**bootcamp_data)

    async def get_bootcamp_by_id(self, bootcamp_id: str) -> Optional[BootcampInDB]:
        """Get bootcamp by ID."""
        data = self._get(BOOTCAMPS, bootcamp_id)
        return BootcampInDB(**data) if data else None

    async def get_bootcamp_by_user(self, user_id: str) -> Optional[BootcampInDB]:
        """First bootcamp published by a user, if any."""
        for data in self._find(BOOTCAMPS, user_id=user_id):
            return BootcampInDB(**data)
        return None

    async def list_bootcamps_by_user(self, user_id: str) -> List[BootcampInDB]:
        return [BootcampInDB(**data) for data in self._find(BOOTCAMPS, user_id=user_id)]

    async def list_located_bootcamps(self) -> List[BootcampInDB]:
        """All bootcamps that have been geocoded."""
        docs = self.db.collection(BOOTCAMPS).stream()
        bootcamps = []
        for doc in docs:
            data = doc.to_dict()
            if data.get("location"):
                bootcamps.append(BootcampInDB(**data))
        return bootcamps

    async def update_bootcamp(
        self, bootcamp_id: str, updates: Dict[str, Any]
    ) -> Optional[BootcampInDB]:
        """Update bootcamp fields. Names are unique."""
        name = updates.get("name")
        if name:
            if any(b["id"] != bootcamp_id for b in self._find(BOOTCAMPS, name=name)):
                raise Conflict("A bootcamp with that name already exists")

        if not self._update(BOOTCAMPS, bootcamp_id, updates):
            return None
        return await self.get_bootcamp_by_id(bootcamp_id)

    async def delete_bootcamp(self, bootcamp_id: str) -> bool:
        """Delete a bootcamp with its courses and reviews."""
        if self._get(BOOTCAMPS, bootcamp_id) is None:
            return False

        for collection in (COURSES, REVIEWS):
            for data in self._find(collection, bootcamp_id=bootcamp_id):
                self.db.collection(collection).document(data["id"]).delete()

        return self._delete(BOOTCAMPS, bootcamp_id)

    async def set_bootcamp_cover(self, bootcamp_id: str, cover_image_path: Optional[str]) -> bool:
        return self._update(BOOTCAMPS, bootcamp_id, {"cover_image_path": cover_image_path})

    def _recompute_average(self, collection: str, field: str, bootcamp_id: str, target: str) -> None:
        values = [
            data[field]
            for data in self._find(collection, bootcamp_id=bootcamp_id)
            if data.get(field) is not None
        ]
        average = round(sum(values) / len(values), 1) if values else None
        self._update(BOOTCAMPS, bootcamp_id, {target: average})

    # ==================== Course Operations ====================

    async def create_course(
        self, bootcamp_id: str, user_id: str, data: Dict[str, Any]
    ) -> CourseInDB:
        """Create a new course and refresh the bootcamp's average cost."""
        course_id = str(uuid.uuid4())
        course_data = {
            **data,
            "id": course_id,
            "bootcamp_id": bootcamp_id,
            "user_id": user_id,
            "created_at": _now(),
            "updated_at": None,
        }

        self.db.collection(COURSES).document(course_id).set(course_data)
        self._recompute_average(COURSES, "tuition", bootcamp_id, "average_cost")

        return CourseInDB(**course_data)

    async def get_course_by_id(self, course_id: str) -> Optional[CourseInDB]:
        """Get course by ID."""
        data = self._get(COURSES, course_id)
        return CourseInDB(**data) if data else None

    async def list_courses_by_bootcamp(self, bootcamp_id: str) -> List[CourseInDB]:
        return [CourseInDB(**data) for data in self._find(COURSES, bootcamp_id=bootcamp_id)]

    async def update_course(self, course_id: str, updates: Dict[str, Any]) -> Optional[CourseInDB]:
        if not self._update(COURSES, course_id, updates):
            return None
        course = await self.get_course_by_id(course_id)
        self._recompute_average(COURSES, "tuition", course.bootcamp_id, "average_cost")
        return course

    async def delete_course(self, course_id: str) -> bool:
        data = self._get(COURSES, course_id)
        if data is None:
            return False

        self._delete(COURSES, course_id)
        self._recompute_average(COURSES, "tuition", data["bootcamp_id"], "average_cost")
        return True

    # ==================== Review Operations ====================

    async def create_review(
        self, bootcamp_id: str, user_id: str, data: Dict[str, Any]
    ) -> ReviewInDB:
        """Create a review; one per bootcamp per user."""
        if self._find(REVIEWS, bootcamp_id=bootcamp_id, user_id=user_id):
            raise Conflict("You have already reviewed this bootcamp")

        review_id = str(uuid.uuid4())
        review_data = {
            **data,
            "id": review_id,
            "bootcamp_id": bootcamp_id,
            "user_id": user_id,
            "created_at": _now(),
            "updated_at": None,
        }

        self.db.collection(REVIEWS).document(review_id).set(review_data)
        self._recompute_average(REVIEWS, "rating", bootcamp_id, "average_rating")

        return ReviewInDB(**review_data)

    async def get_review_by_id(self, review_id: str) -> Optional[ReviewInDB]:
        """Get review by ID."""
        data = self._get(REVIEWS, review_id)
        return ReviewInDB(**data) if data else None

    async def list_reviews_by_bootcamp(self, bootcamp_id: str) -> List[ReviewInDB]:
        return [ReviewInDB(**data) for data in self._find(REVIEWS, bootcamp_id=bootcamp_id)]

    async def update_review(self, review_id: str, updates: Dict[str, Any]) -> Optional[ReviewInDB]:
        if not self._update(REVIEWS, review_id, updates):
            return None
        review = await self.get_review_by_id(review_id)
        self._recompute_average(REVIEWS, "rating", review.bootcamp_id, "average_rating")
        return review

    async def delete_review(self, review_id: str) -> bool:
        data = self._get(REVIEWS, review_id)
        if data is None:
            return False

        self._delete(REVIEWS, review_id)
        self._recompute_average(REVIEWS, "rating", data["bootcamp_id"], "average_rating")
        return True
