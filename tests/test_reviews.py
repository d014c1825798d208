import pytest

from campshare.db.models import ReviewDB
from conftest import create_campground, register


@pytest.fixture
def campground(make_client):
    owner = make_client()
    register(owner, "owner")
    return create_campground(owner)


def test_create_review(make_client, campground):
    client = make_client()
    reviewer = register(client, "reviewer")

    response = client.post(f"/campgrounds/{campground['id']}/reviews", json={"rating": 5, "body": "Great stars"})
    assert response.status_code == 201
    review = response.json()["review"]
    assert review["rating"] == 5
    assert review["body"] == "Great stars"
    assert review["author"] == {"id": reviewer["id"], "username": "reviewer"}
    assert review["campgroundId"] == campground["id"]


def test_same_user_can_review_twice(make_client, campground):
    client = make_client()
    register(client, "reviewer")
    for body in ("First visit", "Second visit"):
        response = client.post(f"/campgrounds/{campground['id']}/reviews", json={"rating": 4, "body": body})
        assert response.status_code == 201

    detail = client.get(f"/campgrounds/{campground['id']}").json()
    assert [r["body"] for r in detail["reviews"]] == ["First visit", "Second visit"]


@pytest.mark.parametrize("payload", [
    {"rating": 0, "body": "Too low"},
    {"rating": 6, "body": "Too high"},
    {"rating": 3.5, "body": "Fractional"},
    {"rating": 3, "body": ""},
    {"body": "No rating"},
])
def test_review_validation(make_client, campground, payload):
    client = make_client()
    register(client, "reviewer")
    response = client.post(f"/campgrounds/{campground['id']}/reviews", json=payload)
    assert response.status_code == 400
    assert response.json()["statusCode"] == 400


def test_review_requires_login(make_client, campground):
    response = make_client().post(f"/campgrounds/{campground['id']}/reviews", json={"rating": 3, "body": "Hi"})
    assert response.status_code == 401


def test_review_on_missing_campground(make_client):
    client = make_client()
    register(client, "reviewer")
    response = client.post("/campgrounds/777/reviews", json={"rating": 3, "body": "Where?"})
    assert response.status_code == 404


def test_only_review_author_can_delete(make_client, campground, db_session):
    author = make_client()
    register(author, "reviewer")
    review = author.post(
        f"/campgrounds/{campground['id']}/reviews", json={"rating": 2, "body": "Muddy"}
    ).json()["review"]
    url = f"/campgrounds/{campground['id']}/reviews/{review['id']}"

    assert make_client().delete(url).status_code == 401

    other = make_client()
    register(other, "other")
    assert other.delete(url).status_code == 403

    response = author.delete(url)
    assert response.status_code == 200
    assert db_session.query(ReviewDB).filter(ReviewDB.id == review["id"]).count() == 0
    assert author.get(f"/campgrounds/{campground['id']}").json()["reviews"] == []


def test_delete_review_under_wrong_campground(make_client, campground):
    author = make_client()
    register(author, "reviewer")
    other_campground = create_campground(author, title="Elsewhere")
    review = author.post(
        f"/campgrounds/{campground['id']}/reviews", json={"rating": 4, "body": "Good"}
    ).json()["review"]

    response = author.delete(f"/campgrounds/{other_campground['id']}/reviews/{review['id']}")
    assert response.status_code == 404
