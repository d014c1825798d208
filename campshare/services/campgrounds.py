import logging
import math

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload, selectinload

from campshare.db.models import CampgroundDB, ImageDB, ReviewDB
from campshare.geocoding.nominatim import GeocodingError
from campshare.media.storage import MediaError
from campshare.services.errors import NotFound, ValidationFailed

# Get logger
logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 50
DEFAULT_SORT = "-id"
NEARBY_LIMIT = 20
NEARBY_MAX_DISTANCE = 50000  # metres
EARTH_RADIUS_M = 6371008.8

SORT_COLUMNS = {
    "id": CampgroundDB.id,
    "_id": CampgroundDB.id,
    "price": CampgroundDB.price,
    "title": CampgroundDB.title,
    "createdAt": CampgroundDB.created_at,
}


def _to_int(value, default):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def clamp_page_params(page=None, limit=None):
    """Coerce raw page/limit values: page >= 1 (default 1), limit within [1, 50] (default 12)."""
    page = max(1, _to_int(page, 1))
    limit = min(MAX_PAGE_SIZE, max(1, _to_int(limit, DEFAULT_PAGE_SIZE)))
    return page, limit


def page_metadata(page, limit, total):
    total_pages = max(1, math.ceil(total / limit))
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages,
        "hasNext": page < total_pages,
        "hasPrev": page > 1,
    }


def haversine_distance(lng1, lat1, lng2, lat2):
    """Great-circle distance in metres between two points."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))


class CampgroundService:
    """
    Create, read, update and delete campgrounds together with their images and reviews.

    Ownership is checked by the caller before update/delete run. Geocoding and media storage are
    optional collaborators: a missing geocoder behaves like one that never finds a match.
    """

    def __init__(self, db, geocoder=None, media=None):
        self.db = db
        self.geocoder = geocoder
        self.media = media

    def _base_query(self):
        return self.db.query(CampgroundDB).options(
            joinedload(CampgroundDB.author),
            selectinload(CampgroundDB.images),
            selectinload(CampgroundDB.reviews),
        )

    def list(self, page=None, limit=None, sort=None, q=None):
        page, limit = clamp_page_params(page, limit)

        query = self.db.query(CampgroundDB)
        if q and q.strip():
            pattern = f"%{q.strip()}%"
            query = query.filter(or_(
                CampgroundDB.title.ilike(pattern),
                CampgroundDB.description.ilike(pattern),
                CampgroundDB.location.ilike(pattern),
            ))

        total = query.with_entities(func.count(CampgroundDB.id)).scalar()

        sort_key = sort or DEFAULT_SORT
        descending = sort_key.startswith("-")
        column = SORT_COLUMNS.get(sort_key.lstrip("-"))
        if column is None:
            logger.debug(f"Unknown sort key '{sort_key}', using {DEFAULT_SORT}")
            column, descending = CampgroundDB.id, True
        ordering = [column.desc() if descending else column.asc()]
        if column is not CampgroundDB.id:
            ordering.append(CampgroundDB.id.desc())

        result = page_metadata(page, limit, total)
        if page > result["totalPages"]:
            # Past the last page; nothing to fetch and the offset may not fit the driver's integer type
            result["items"] = []
            return result

        items = (
            query.options(
                joinedload(CampgroundDB.author),
                selectinload(CampgroundDB.images),
                selectinload(CampgroundDB.reviews),
            )
            .order_by(*ordering)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        result["items"] = items
        return result

    def get(self, campground_id) -> CampgroundDB:
        campground = (
            self.db.query(CampgroundDB)
            .options(
                joinedload(CampgroundDB.author),
                selectinload(CampgroundDB.images),
                selectinload(CampgroundDB.reviews).joinedload(ReviewDB.author),
            )
            .filter(CampgroundDB.id == campground_id)
            .first()
        )
        if not campground:
            raise NotFound("Campground not found")
        return campground

    def nearby(self, lng, lat, max_distance=NEARBY_MAX_DISTANCE, limit=NEARBY_LIMIT):
        """Campgrounds within max_distance metres of (lng, lat), nearest first, as (campground, distance) pairs."""
        # Bounding-box prefilter, then exact distances in Python
        lat_delta = math.degrees(max_distance / EARTH_RADIUS_M)
        cos_lat = math.cos(math.radians(lat))
        lng_delta = 180.0 if cos_lat < 1e-6 else min(180.0, lat_delta / cos_lat)

        query = self._base_query().filter(
            CampgroundDB.latitude.between(lat - lat_delta, lat + lat_delta)
        )
        if lng_delta < 180.0 and -180.0 <= lng - lng_delta and lng + lng_delta <= 180.0:
            query = query.filter(CampgroundDB.longitude.between(lng - lng_delta, lng + lng_delta))

        matches = []
        for campground in query.all():
            distance = haversine_distance(lng, lat, campground.longitude, campground.latitude)
            if distance <= max_distance:
                matches.append((campground, distance))

        matches.sort(key=lambda pair: pair[1])
        return matches[:limit]

    def _geocode(self, location):
        if self.geocoder is None or not location:
            return None
        try:
            return self.geocoder.forward_geocode(location)
        except GeocodingError as e:
            logger.warning(f"Geocoding failed for '{location}': {e}")
            return None

    def _store_uploads(self, uploads):
        """Push uploads to the media collaborator, preserving order. All-or-nothing."""
        uploads = [u for u in (uploads or []) if getattr(u, "filename", None)]
        if not uploads:
            return []
        if self.media is None:
            raise ValidationFailed("Image uploads are not available")

        stored = []
        try:
            for upload in uploads:
                stored.append(self.media.upload(upload.file, upload.filename))
        except MediaError as e:
            self._discard_media([image.filename for image in stored])
            raise ValidationFailed(str(e))
        return [ImageDB(url=image.url, filename=image.filename) for image in stored]

    def _discard_media(self, filenames):
        """Best-effort removal from the media collaborator; failures are logged, never raised."""
        if self.media is None:
            return
        for filename in filenames:
            try:
                self.media.delete(filename)
            except Exception as e:
                logger.warning(f"Could not delete media '{filename}': {e}")

    def _commit(self, new_images=()):
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            self._discard_media([image.filename for image in new_images])
            raise

    def create(self, author_id, fields, uploads=None) -> CampgroundDB:
        geometry = fields.geometry.model_dump() if fields.geometry else self._geocode(fields.location)
        if not geometry:
            raise ValidationFailed(
                f"Could not find coordinates for '{fields.location}'. Provide a geometry for this campground."
            )

        images = self._store_uploads(uploads)
        longitude, latitude = geometry["coordinates"]
        campground = CampgroundDB(
            title=fields.title,
            location=fields.location,
            price=fields.price,
            description=fields.description,
            longitude=longitude,
            latitude=latitude,
            author_id=author_id,
            images=images,
        )
        self.db.add(campground)
        self._commit(images)

        logger.info(f"Created campground {campground.id} '{campground.title}' with {len(images)} images")
        return self.get(campground.id)

    def update(self, campground_id, fields, uploads=None, delete_images=None) -> CampgroundDB:
        campground = self.get(campground_id)

        changes = fields.model_dump(exclude_unset=True, exclude_none=True, exclude={"geometry"})
        for name, value in changes.items():
            setattr(campground, name, value)

        if fields.geometry:
            geometry = fields.geometry.model_dump()
        else:
            geometry = self._geocode(campground.location)
            if not geometry:
                logger.info(f"Keeping previous geometry for campground {campground_id}")
        if geometry:
            campground.longitude, campground.latitude = geometry["coordinates"]

        new_images = self._store_uploads(uploads)
        campground.images.extend(new_images)

        removed = []
        if delete_images:
            doomed = set(delete_images)
            removed = [image.filename for image in campground.images if image.filename in doomed]
            campground.images = [image for image in campground.images if image.filename not in doomed]

        # Remote copies are removed only after the rows are committed
        self._commit(new_images)
        self._discard_media(removed)

        logger.info(f"Updated campground {campground_id}: {len(new_images)} images added, {len(removed)} removed")
        self.db.expire_all()
        return self.get(campground_id)

    def delete(self, campground_id):
        campground = self.db.query(CampgroundDB).filter(CampgroundDB.id == campground_id).first()
        if not campground:
            raise NotFound("Campground not found")

        filenames = [image.filename for image in campground.images]
        review_count = len(campground.reviews)

        # One unit of work: the ORM cascade deletes reviews and images before the campground row
        self.db.delete(campground)
        self._commit()

        self._discard_media(filenames)
        logger.info(f"Deleted campground {campground_id} with {review_count} reviews and {len(filenames)} images")
