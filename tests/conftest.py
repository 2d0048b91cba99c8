"""
Shared fixtures.

Firestore and Cloud Storage clients are replaced with in-memory fakes, and
the geocoder and email services with stubs, so the whole API runs offline.
"""
import asyncio
import copy
import os
from collections import defaultdict

# Settings are read once at import time; configure them before the app loads.
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["GCP_PROJECT_ID"] = "test-project"
os.environ["GCP_STORAGE_BUCKET"] = "test-bucket"
os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = ""
os.environ["SMTP_HOST"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient
from google.api_core import exceptions as gcloud_exceptions
from google.cloud import firestore

from bootcamp_api.errors import ValidationError
from bootcamp_api.services import firestore as firestore_service
from bootcamp_api.services import storage as storage_service
from bootcamp_api.services.email import EmailService
from bootcamp_api.services.geocoder import GeocodeResult, GeocoderService


# ==================== Firestore fake ====================

_MISSING = object()


def _matches(data, field, op, value):
    current = data.get(field, _MISSING)
    if current is _MISSING:
        return False
    try:
        if op == "==":
            return current == value
        if op == "in":
            return current in value
        if op == "array_contains":
            return isinstance(current, list) and value in current
        if op == "array_contains_any":
            return isinstance(current, list) and any(v in current for v in value)
        if op == ">":
            return current > value
        if op == ">=":
            return current >= value
        if op == "<":
            return current < value
        if op == "<=":
            return current <= value
    except TypeError:
        return False
    raise ValueError(f"Unsupported operator {op}")


class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocumentReference:
    def __init__(self, store, doc_id):
        self._store = store
        self.id = doc_id

    def get(self):
        return FakeSnapshot(self.id, self._store.get(self.id))

    def set(self, data):
        self._store[self.id] = copy.deepcopy(data)

    def update(self, updates):
        if self.id not in self._store:
            raise gcloud_exceptions.NotFound(f"No document to update: {self.id}")

        doc = self._store[self.id]
        for key, value in updates.items():
            if isinstance(value, firestore.ArrayUnion):
                current = list(doc.get(key) or [])
                current.extend(v for v in value.values if v not in current)
                doc[key] = current
            elif isinstance(value, firestore.ArrayRemove):
                doc[key] = [v for v in doc.get(key) or [] if v not in value.values]
            else:
                doc[key] = copy.deepcopy(value)

    def delete(self):
        self._store.pop(self.id, None)


class FakeQuery:
    def __init__(self, store, filters=(), orders=(), projection=None, skip=0, count=None):
        self._store = store
        self._filters = filters
        self._orders = orders
        self._projection = projection
        self._skip = skip
        self._count = count

    def _copy(self, **changes):
        state = {
            "filters": self._filters,
            "orders": self._orders,
            "projection": self._projection,
            "skip": self._skip,
            "count": self._count,
        }
        state.update(changes)
        return FakeQuery(self._store, **state)

    def where(self, field, op, value):
        return self._copy(filters=self._filters + ((field, op, value),))

    def order_by(self, field, direction="ASCENDING"):
        return self._copy(orders=self._orders + ((field, direction),))

    def select(self, fields):
        return self._copy(projection=tuple(fields))

    def offset(self, skip):
        return self._copy(skip=skip)

    def limit(self, count):
        return self._copy(count=count)

    def stream(self):
        docs = [
            (doc_id, data)
            for doc_id, data in self._store.items()
            if all(_matches(data, *condition) for condition in self._filters)
        ]
        # Documents missing an ordered field are left out, as in Firestore
        for field, _ in self._orders:
            docs = [(doc_id, data) for doc_id, data in docs if field in data]
        for field, direction in reversed(self._orders):
            docs.sort(
                key=lambda item: (item[1][field] is not None, item[1][field]),
                reverse=direction == firestore.Query.DESCENDING,
            )

        end = None if self._count is None else self._skip + self._count
        for doc_id, data in docs[self._skip:end]:
            if self._projection is not None:
                data = {key: data[key] for key in self._projection if key in data}
            yield FakeSnapshot(doc_id, copy.deepcopy(data))


class FakeCollection(FakeQuery):
    def document(self, doc_id):
        return FakeDocumentReference(self._store, doc_id)


class FakeFirestoreClient:
    def __init__(self):
        self.collections = defaultdict(dict)

    def collection(self, name):
        return FakeCollection(self.collections[name])


# ==================== Cloud Storage fake ====================

class FakeBlob:
    def __init__(self, store, name):
        self._store = store
        self.name = name

    def upload_from_string(self, data, content_type=None):
        self._store[self.name] = (bytes(data), content_type)

    def download_as_bytes(self):
        if self.name not in self._store:
            raise gcloud_exceptions.NotFound(f"No such object: {self.name}")
        return self._store[self.name][0]

    def delete(self):
        if self.name not in self._store:
            raise gcloud_exceptions.NotFound(f"No such object: {self.name}")
        del self._store[self.name]


class FakeBucket:
    def __init__(self, store):
        self._store = store

    def blob(self, name):
        return FakeBlob(self._store, name)


class FakeStorageClient:
    def __init__(self):
        self.blobs = {}

    def bucket(self, name):
        return FakeBucket(self.blobs)


# ==================== Fixtures ====================

@pytest.fixture(autouse=True)
def fake_db(monkeypatch):
    db = FakeFirestoreClient()
    monkeypatch.setattr(firestore_service.firestore, "Client", lambda *args, **kwargs: db)
    return db


@pytest.fixture(autouse=True)
def fake_storage(monkeypatch):
    client = FakeStorageClient()
    monkeypatch.setattr(storage_service.storage, "Client", lambda *args, **kwargs: client)
    return client


# Known addresses as (latitude, longitude, city, state, zipcode)
ADDRESSES = {
    "233 Bay State Rd Boston MA 02215": (42.3505, -71.1054, "Boston", "MA", "02215"),
    "45 Upper College Rd Kingston RI 02881": (41.4807, -71.5228, "Kingston", "RI", "02881"),
    "220 Pawtucket St Lowell MA 01854": (42.6446, -71.3370, "Lowell", "MA", "01854"),
    "1 Grand Ave Los Angeles CA 90012": (34.0550, -118.2490, "Los Angeles", "CA", "90012"),
    "02118": (42.3389, -71.0706, "Boston", "MA", "02118"),
}


@pytest.fixture
def geocoded(monkeypatch):
    """Geocoder stub that only knows ADDRESSES."""
    lookups = []

    async def fake_geocode(self, address):
        lookups.append(address)
        if address not in ADDRESSES:
            raise ValidationError(f"Could not geocode address: {address}")
        lat, lng, city, state, zipcode = ADDRESSES[address]
        return GeocodeResult(
            latitude=lat,
            longitude=lng,
            formatted_address=f"{city}, {state} {zipcode}, US",
            city=city,
            state_code=state,
            zipcode=zipcode,
            country_code="US",
        )

    monkeypatch.setattr(GeocoderService, "geocode", fake_geocode)
    return lookups


@pytest.fixture
def outbox(monkeypatch):
    """Captures outgoing email instead of sending it."""
    sent = []

    async def fake_send_email(self, to, subject, message):
        sent.append({"to": to, "subject": subject, "message": message})

    monkeypatch.setattr(EmailService, "send_email", fake_send_email)
    return sent


@pytest.fixture
def client(geocoded, outbox):
    from bootcamp_api.main import app

    return TestClient(app)


@pytest.fixture
def make_user():
    """Create a user directly in the fake store and start a session for them."""
    from bootcamp_api.auth.session import SessionAuthenticator
    from bootcamp_api.auth.utils import hash_password
    from bootcamp_api.services.firestore import FirestoreService

    counter = {"n": 0}

    def _make(role="user", email=None, password="secret123", name="Test User"):
        counter["n"] += 1
        email = email or f"{role}{counter['n']}@example.com"

        async def create():
            firestore = FirestoreService()
            user = await firestore.create_user(
                name=name,
                email=email,
                password_hash=hash_password(password),
                role=role,
            )
            token = await SessionAuthenticator(firestore).issue_token(user)
            return user, token

        return asyncio.run(create())

    return _make


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


BOOTCAMP_PAYLOAD = {
    "name": "Devworks Bootcamp",
    "description": "Devworks is a full stack JavaScript Bootcamp located in Boston.",
    "website": "https://devworks.com",
    "address": "233 Bay State Rd Boston MA 02215",
    "careers": ["Web Development", "UI/UX", "Business"],
    "housing": True,
    "job_assistance": True,
    "job_guarantee": False,
    "accept_gi": True,
}

COURSE_PAYLOAD = {
    "title": "Front End Web Development",
    "description": "This course will provide you with all of the essentials.",
    "weeks": 8,
    "tuition": 8000,
    "minimum_skill": "beginner",
    "scholarship_available": True,
}

REVIEW_PAYLOAD = {
    "title": "Learned a ton!",
    "text": "I learned a lot here and the instructors were very helpful.",
    "rating": 8,
}
