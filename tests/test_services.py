import io
import math

import pytest
from sqlalchemy.exc import SQLAlchemyError

from campshare.db.models import CampgroundDB, ImageDB, ReviewDB, UserDB
from campshare.models.campground import CampgroundCreate, CampgroundUpdate
from campshare.services.campgrounds import CampgroundService, clamp_page_params, haversine_distance
from campshare.services.errors import NotFound
from campshare.services.reviews import ReviewService
from conftest import AUSTIN, DENVER, FlakyMedia, UploadedFile, png_bytes


@pytest.fixture
def author(db_session):
    user = UserDB(username="author", email="author@example.com", password_hash="x")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def service(db_session, geocoder, media):
    return CampgroundService(db_session, geocoder=geocoder, media=media)


def make_campgrounds(db_session, author, count, **fields):
    for i in range(count):
        values = dict(title=f"Camp {i}", location="Austin, TX", price=10 + i, description="d",
                      longitude=-97.7, latitude=30.2, author_id=author.id)
        values.update(fields)
        db_session.add(CampgroundDB(**values))
    db_session.commit()


@pytest.mark.parametrize("raw,expected", [
    ((None, None), (1, 12)),
    (("0", "0"), (1, 1)),
    (("-3", "500"), (1, 50)),
    (("abc", "xyz"), (1, 12)),
    (("4", "7"), (4, 7)),
])
def test_clamp_page_params(raw, expected):
    assert clamp_page_params(*raw) == expected


@pytest.mark.parametrize("total", [0, 1, 12, 13, 30])
@pytest.mark.parametrize("limit", [1, 5, 12, 50])
def test_page_flags(service, db_session, author, total, limit):
    make_campgrounds(db_session, author, total)
    total_pages = max(1, math.ceil(total / limit))

    for page in range(1, total_pages + 2):
        result = service.list(page=page, limit=limit)
        assert result["total"] == total
        assert result["totalPages"] == total_pages
        assert result["hasNext"] == (page < total_pages)
        assert result["hasPrev"] == (page > 1)
        if page > total_pages:
            assert result["items"] == []


def test_page_far_past_the_end_is_empty(service, db_session, author):
    make_campgrounds(db_session, author, 3)

    result = service.list(page=str(10 ** 20), limit=12)
    assert result["items"] == []
    assert result["totalPages"] == 1
    assert result["hasPrev"] is True
    assert result["hasNext"] is False


def test_list_default_is_newest_first(service, db_session, author):
    make_campgrounds(db_session, author, 3)
    ids = [c.id for c in service.list()["items"]]
    assert ids == sorted(ids, reverse=True)


def test_list_sort_and_unknown_sort(service, db_session, author):
    make_campgrounds(db_session, author, 4)
    prices = [c.price for c in service.list(sort="price")["items"]]
    assert prices == sorted(prices)
    prices = [c.price for c in service.list(sort="-price")["items"]]
    assert prices == sorted(prices, reverse=True)

    fallback = [c.id for c in service.list(sort="bogus")["items"]]
    assert fallback == sorted(fallback, reverse=True)


def test_list_text_search(service, db_session, author):
    make_campgrounds(db_session, author, 2)
    make_campgrounds(db_session, author, 1, title="Lakeside Hollow", location="Duluth, MN")

    result = service.list(q="lakeside")
    assert result["total"] == 1
    assert result["items"][0].title == "Lakeside Hollow"
    assert service.list(q="duluth")["total"] == 1


@pytest.mark.parametrize("review_count", [0, 1, 5])
def test_delete_leaves_no_reviews(service, db_session, author, review_count):
    make_campgrounds(db_session, author, 1)
    campground_id = db_session.query(CampgroundDB.id).scalar()
    reviews = ReviewService(db_session)
    for i in range(review_count):
        reviews.create(campground_id, author.id, 1 + i % 5, f"review {i}")

    service.delete(campground_id)
    assert db_session.query(ReviewDB).filter(ReviewDB.campground_id == campground_id).count() == 0
    with pytest.raises(NotFound):
        service.get(campground_id)


def test_create_persists_images_in_upload_order(service, author):
    uploads = [UploadedFile(file=io.BytesIO(png_bytes(c)), filename=f"{c}.png")
               for c in ("red", "green", "blue")]
    fields = CampgroundCreate(title="Camp", location="Austin, TX", price=0, description="Free!")

    campground = service.create(author.id, fields, uploads)
    assert campground.geometry == AUSTIN
    assert campground.author.username == "author"
    assert len(campground.images) == 3
    assert [i.id for i in campground.images] == sorted(i.id for i in campground.images)


def test_failed_media_deletion_does_not_block_local_removal(db_session, geocoder, tmp_path, author):
    media = FlakyMedia(str(tmp_path / "flaky"))
    service = CampgroundService(db_session, geocoder=geocoder, media=media)
    uploads = [UploadedFile(file=io.BytesIO(png_bytes()), filename=f"{n}.png") for n in "ab"]
    fields = CampgroundCreate(title="Camp", location="Austin, TX", price=5, description="d")
    campground = service.create(author.id, fields, uploads)
    first, second = [i.filename for i in campground.images]

    updated = service.update(campground.id, CampgroundUpdate(), delete_images=[first])
    assert [i.filename for i in updated.images] == [second]
    assert media.delete_attempts == [first]

    service.delete(campground.id)
    assert media.delete_attempts == [first, second]
    assert db_session.query(ImageDB).count() == 0


def test_update_leaves_media_alone_when_commit_fails(db_session, geocoder, tmp_path, author, monkeypatch):
    media = FlakyMedia(str(tmp_path / "flaky"))
    service = CampgroundService(db_session, geocoder=geocoder, media=media)
    uploads = [UploadedFile(file=io.BytesIO(png_bytes()), filename="a.png")]
    fields = CampgroundCreate(title="Camp", location="Austin, TX", price=5, description="d")
    campground = service.create(author.id, fields, uploads)
    campground_id, filename = campground.id, campground.images[0].filename

    def failing_commit():
        raise SQLAlchemyError("database went away")

    monkeypatch.setattr(db_session, "commit", failing_commit)
    with pytest.raises(SQLAlchemyError):
        service.update(campground_id, CampgroundUpdate(title="Renamed"), delete_images=[filename])
    monkeypatch.undo()

    assert media.delete_attempts == []
    campground = service.get(campground_id)
    assert campground.title == "Camp"
    assert [i.filename for i in campground.images] == [filename]


def test_nearby_orders_by_distance(service, db_session, author):
    make_campgrounds(db_session, author, 1, title="Downtown", longitude=-97.7431, latitude=30.2672)
    make_campgrounds(db_session, author, 1, title="Round Rock", longitude=-97.6789, latitude=30.5083)
    make_campgrounds(db_session, author, 1, title="Denver", longitude=DENVER["coordinates"][0],
                     latitude=DENVER["coordinates"][1])

    matches = service.nearby(-97.75, 30.27, max_distance=50000)
    assert [c.title for c, _ in matches] == ["Downtown", "Round Rock"]
    assert matches[0][1] < matches[1][1] <= 50000


def test_haversine_distance():
    # Austin to Denver is roughly 1240 km
    distance = haversine_distance(*AUSTIN["coordinates"], *DENVER["coordinates"])
    assert 1200000 < distance < 1300000
    assert haversine_distance(10, 10, 10, 10) == 0
