"""
Request-scoped dependencies: database sessions, services, and the access-control checks
(is_logged_in, is_author, is_review_author) that gate mutating routes.
"""
import logging
from typing import Optional

from fastapi import Depends, Request, Response
from itsdangerous import BadSignature, TimestampSigner
from sqlalchemy.orm import Session

from campshare.db.models import CampgroundDB, ReviewDB, UserDB
from campshare.services.auth import AuthService
from campshare.services.campgrounds import CampgroundService
from campshare.services.errors import Forbidden, NotFound, Unauthorized
from campshare.services.reviews import ReviewService

logger = logging.getLogger(__name__)

SESSION_SALT = "campshare.session"


def make_signer(secret) -> TimestampSigner:
    return TimestampSigner(secret, salt=SESSION_SALT)


def get_db(request: Request):
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()


def get_campground_service(request: Request, db: Session = Depends(get_db)) -> CampgroundService:
    return CampgroundService(db, geocoder=request.app.state.geocoder, media=request.app.state.media)


def get_review_service(db: Session = Depends(get_db)) -> ReviewService:
    return ReviewService(db)


def get_auth_service(request: Request, db: Session = Depends(get_db)) -> AuthService:
    return AuthService(db, session_max_age=request.app.state.settings.session_max_age)


def read_session_token(request: Request) -> Optional[str]:
    settings = request.app.state.settings
    cookie = request.cookies.get(settings.cookie_name)
    if not cookie:
        return None
    try:
        token = request.app.state.signer.unsign(cookie, max_age=settings.session_max_age)
    except BadSignature:
        logger.info("Rejected session cookie with a bad or expired signature")
        return None
    return token.decode()


def set_session_cookie(request: Request, response: Response, token):
    settings = request.app.state.settings
    response.set_cookie(
        settings.cookie_name,
        request.app.state.signer.sign(token).decode(),
        max_age=settings.session_max_age,
        httponly=True,
        secure=settings.is_production,
        samesite="none" if settings.is_production else "lax",
        path="/",
    )


def clear_session_cookie(request: Request, response: Response):
    settings = request.app.state.settings
    response.delete_cookie(
        settings.cookie_name,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="none" if settings.is_production else "lax",
    )


def get_current_user(request: Request, auth: AuthService = Depends(get_auth_service)) -> Optional[UserDB]:
    token = read_session_token(request)
    if not token:
        return None
    return auth.resolve_session(token)


def is_logged_in(user: Optional[UserDB] = Depends(get_current_user)) -> UserDB:
    if user is None:
        raise Unauthorized("You must be logged in.")
    return user


def is_author(campground_id: int, user: UserDB = Depends(is_logged_in), db: Session = Depends(get_db)) -> UserDB:
    # Only the owner column is loaded here
    author_id = db.query(CampgroundDB.author_id).filter(CampgroundDB.id == campground_id).scalar()
    if author_id is None:
        raise NotFound("Campground not found")
    if author_id != user.id:
        raise Forbidden("You do not have permission to do that.")
    return user


def is_review_author(campground_id: int, review_id: int, user: UserDB = Depends(is_logged_in),
                     db: Session = Depends(get_db)) -> UserDB:
    row = (
        db.query(ReviewDB.author_id)
        .filter(ReviewDB.id == review_id, ReviewDB.campground_id == campground_id)
        .first()
    )
    if row is None:
        raise NotFound("Review not found")
    if row.author_id != user.id:
        raise Forbidden("You do not have permission to do that.")
    return user
