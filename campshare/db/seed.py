"""
Fills an empty database with sample campgrounds for local development.
"""
import logging
import random

from campshare.db.models import CampgroundDB, UserDB
from campshare.services.auth import hash_password

logger = logging.getLogger(__name__)

SEED_USERNAME = "seed"
SEED_PASSWORD = "SeedPassword1"

CITIES = [
    ("Austin", "TX", -97.7431, 30.2672),
    ("Denver", "CO", -104.9903, 39.7392),
    ("Flagstaff", "AZ", -111.6513, 35.1983),
    ("Bend", "OR", -121.3153, 44.0582),
    ("Asheville", "NC", -82.5515, 35.5951),
    ("Moab", "UT", -109.5498, 38.5733),
    ("Bozeman", "MT", -111.0429, 45.6770),
    ("Duluth", "MN", -92.1005, 46.7867),
    ("Burlington", "VT", -73.2121, 44.4759),
    ("Santa Fe", "NM", -105.9378, 35.6870),
]
DESCRIPTORS = ["Forest", "Ancient", "Petrified", "Roaring", "Misty", "Silent", "Hidden", "Sunset"]
PLACES = ["Flats", "Village", "Canyon", "Ridge", "Creek", "Hollow", "Bayshore", "Pond"]
DESCRIPTION = "A quiet spot with shaded pitches, fire rings and easy access to the trails."


def seed_database(database, count=50, rng=None):
    """
    Create count sample campgrounds owned by the seed user.

    Does nothing when campgrounds already exist. Returns the number of campgrounds created.
    """
    rng = rng or random.Random()
    db = database.session()
    try:
        if db.query(CampgroundDB.id).first() is not None:
            logger.info("Database already has campgrounds, skipping seed.")
            return 0

        author = db.query(UserDB).filter(UserDB.username == SEED_USERNAME).first()
        if author is None:
            author = UserDB(
                username=SEED_USERNAME,
                email="seed@campshare.local",
                password_hash=hash_password(SEED_PASSWORD),
            )
            db.add(author)
            db.flush()

        for _ in range(count):
            city, state, longitude, latitude = rng.choice(CITIES)
            db.add(CampgroundDB(
                title=f"{rng.choice(DESCRIPTORS)} {rng.choice(PLACES)}",
                location=f"{city}, {state}",
                price=rng.randint(10, 29),
                description=DESCRIPTION,
                longitude=longitude,
                latitude=latitude,
                author_id=author.id,
            ))
        db.commit()
        logger.info(f"Seeded {count} campgrounds.")
        return count
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
