import pytest

from conftest import BOOTCAMP_PAYLOAD, COURSE_PAYLOAD, REVIEW_PAYLOAD, auth_header


@pytest.fixture
def bootcamp(client, make_user):
    """A bootcamp with its publisher's token."""
    publisher, token = make_user(role="publisher")
    res = client.post("/api/bootcamps", json=BOOTCAMP_PAYLOAD, headers=auth_header(token))
    assert res.status_code == 201, res.text
    return res.json()["data"], token


def _add_course(client, bootcamp_id, token, **overrides):
    return client.post(
        f"/api/bootcamps/{bootcamp_id}/courses",
        json={**COURSE_PAYLOAD, **overrides},
        headers=auth_header(token),
    )


def _add_review(client, bootcamp_id, token, **overrides):
    return client.post(
        f"/api/bootcamps/{bootcamp_id}/reviews",
        json={**REVIEW_PAYLOAD, **overrides},
        headers=auth_header(token),
    )


# ==================== Courses ====================

def test_add_course_updates_average_cost(client, bootcamp):
    camp, token = bootcamp

    first = _add_course(client, camp["id"], token, tuition=8000)
    _add_course(client, camp["id"], token, title="Full Stack", tuition=12001)

    assert first.status_code == 201, first.text
    assert first.json()["data"]["bootcamp_id"] == camp["id"]
    refreshed = client.get(f"/api/bootcamps/{camp['id']}").json()["data"]
    assert refreshed["average_cost"] == 10000.5


def test_course_requires_owner(client, bootcamp, make_user):
    camp, _ = bootcamp
    _, other_publisher = make_user(role="publisher")
    _, plain_user = make_user(role="user")

    assert _add_course(client, camp["id"], other_publisher).status_code == 403
    assert _add_course(client, camp["id"], plain_user).status_code == 403


def test_course_for_missing_bootcamp(client, make_user):
    _, token = make_user(role="publisher")

    res = _add_course(client, "missing", token)

    assert res.status_code == 404


def test_course_validation(client, bootcamp):
    camp, token = bootcamp

    assert _add_course(client, camp["id"], token, weeks=0).status_code == 400
    assert _add_course(client, camp["id"], token, minimum_skill="expert").status_code == 400


def test_list_courses(client, bootcamp, make_user):
    camp, token = bootcamp
    _add_course(client, camp["id"], token, title="Cheap", tuition=1000)
    _add_course(client, camp["id"], token, title="Pricey", tuition=20000)

    _, admin = make_user(role="admin")
    other = client.post(
        "/api/bootcamps",
        json={**BOOTCAMP_PAYLOAD, "name": "ModernTech Bootcamp", "address": "220 Pawtucket St Lowell MA 01854"},
        headers=auth_header(admin),
    ).json()["data"]
    _add_course(client, other["id"], admin, title="Elsewhere", tuition=5000)

    everything = client.get("/api/courses").json()
    assert everything["results"] == 3

    scoped = client.get(f"/api/bootcamps/{camp['id']}/courses", params={"sort": "tuition"}).json()
    assert [c["title"] for c in scoped["data"]] == ["Cheap", "Pricey"]

    cheap = client.get("/api/courses", params={"tuition[lt]": "6000", "sort": "-tuition"}).json()
    assert [c["title"] for c in cheap["data"]] == ["Elsewhere", "Cheap"]


def test_update_and_delete_course(client, bootcamp):
    camp, token = bootcamp
    course = _add_course(client, camp["id"], token, tuition=8000).json()["data"]
    url = f"/api/courses/{course['id']}"

    updated = client.patch(url, json={"tuition": 9000}, headers=auth_header(token))
    assert updated.status_code == 200, updated.text
    assert updated.json()["data"]["tuition"] == 9000
    assert client.get(f"/api/bootcamps/{camp['id']}").json()["data"]["average_cost"] == 9000

    assert client.delete(url, headers=auth_header(token)).status_code == 204
    assert client.get(url).status_code == 404
    assert client.get(f"/api/bootcamps/{camp['id']}").json()["data"]["average_cost"] is None


def test_update_course_requires_owner(client, bootcamp, make_user):
    camp, token = bootcamp
    course = _add_course(client, camp["id"], token).json()["data"]
    _, other = make_user(role="publisher")

    res = client.patch(f"/api/courses/{course['id']}", json={"weeks": 12}, headers=auth_header(other))

    assert res.status_code == 403


# ==================== Reviews ====================

def test_add_review_updates_average_rating(client, bootcamp, make_user):
    camp, _ = bootcamp
    _, first = make_user(role="user")
    _, second = make_user(role="user")

    res = _add_review(client, camp["id"], first, rating=8)
    _add_review(client, camp["id"], second, rating=5)

    assert res.status_code == 201, res.text
    assert client.get(f"/api/bootcamps/{camp['id']}").json()["data"]["average_rating"] == 6.5


def test_publishers_cannot_review(client, bootcamp):
    camp, token = bootcamp

    assert _add_review(client, camp["id"], token).status_code == 403


def test_one_review_per_user_per_bootcamp(client, bootcamp, make_user):
    camp, _ = bootcamp
    _, token = make_user(role="user")
    assert _add_review(client, camp["id"], token).status_code == 201

    res = _add_review(client, camp["id"], token, title="Again")

    assert res.status_code == 409
    assert res.json()["message"] == "You have already reviewed this bootcamp"


def test_review_rating_range(client, bootcamp, make_user):
    camp, _ = bootcamp
    _, token = make_user(role="user")

    assert _add_review(client, camp["id"], token, rating=0).status_code == 400
    assert _add_review(client, camp["id"], token, rating=11).status_code == 400


def test_review_for_missing_bootcamp(client, make_user):
    _, token = make_user(role="user")

    assert _add_review(client, "missing", token).status_code == 404


def test_list_reviews(client, bootcamp, make_user):
    camp, _ = bootcamp
    _, first = make_user(role="user")
    _, second = make_user(role="user")
    _add_review(client, camp["id"], first, rating=9)
    _add_review(client, camp["id"], second, rating=3)

    everything = client.get("/api/reviews").json()
    assert everything["results"] == 2

    good = client.get(f"/api/bootcamps/{camp['id']}/reviews", params={"rating[gte]": "5"}).json()
    assert [r["rating"] for r in good["data"]] == [9]


def test_update_and_delete_review(client, bootcamp, make_user):
    camp, _ = bootcamp
    _, author = make_user(role="user")
    _, stranger = make_user(role="user")
    _, admin = make_user(role="admin")
    review = _add_review(client, camp["id"], author, rating=4).json()["data"]
    url = f"/api/reviews/{review['id']}"

    assert client.patch(url, json={"rating": 10}, headers=auth_header(stranger)).status_code == 403

    updated = client.patch(url, json={"rating": 10}, headers=auth_header(author))
    assert updated.status_code == 200, updated.text
    assert client.get(f"/api/bootcamps/{camp['id']}").json()["data"]["average_rating"] == 10

    assert client.delete(url, headers=auth_header(stranger)).status_code == 403
    assert client.delete(url, headers=auth_header(admin)).status_code == 204
    assert client.get(url).status_code == 404
    assert client.get(f"/api/bootcamps/{camp['id']}").json()["data"]["average_rating"] is None
