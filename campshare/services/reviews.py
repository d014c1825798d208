import logging

from sqlalchemy.orm import joinedload

from campshare.db.models import CampgroundDB, ReviewDB
from campshare.services.errors import NotFound

logger = logging.getLogger(__name__)


class ReviewService:
    def __init__(self, db):
        self.db = db

    def _require_campground(self, campground_id):
        exists = self.db.query(CampgroundDB.id).filter(CampgroundDB.id == campground_id).scalar()
        if exists is None:
            raise NotFound("Campground not found")

    def create(self, campground_id, author_id, rating, body) -> ReviewDB:
        self._require_campground(campground_id)

        review = ReviewDB(rating=rating, body=body, author_id=author_id, campground_id=campground_id)
        self.db.add(review)
        self.db.commit()
        logger.info(f"User {author_id} reviewed campground {campground_id} ({rating}/5)")

        return (
            self.db.query(ReviewDB)
            .options(joinedload(ReviewDB.author))
            .filter(ReviewDB.id == review.id)
            .one()
        )

    def delete(self, campground_id, review_id):
        self._require_campground(campground_id)

        review = (
            self.db.query(ReviewDB)
            .filter(ReviewDB.id == review_id, ReviewDB.campground_id == campground_id)
            .first()
        )
        if not review:
            raise NotFound("Review not found")

        self.db.delete(review)
        self.db.commit()
        logger.info(f"Deleted review {review_id} from campground {campground_id}")
