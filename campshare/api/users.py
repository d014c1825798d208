from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from campshare.api.deps import (
    clear_session_cookie, get_auth_service, get_current_user, is_logged_in, read_session_token,
    set_session_cookie
)
from campshare.api.ratelimit import AuthAttempt, auth_attempt
from campshare.api.serializers import serialize_user
from campshare.models.user import UserCreate, UserLogin
from campshare.services.auth import AuthService

router = APIRouter(tags=["users"])


@router.post("/register", status_code=201)
def register(
    payload: UserCreate,
    request: Request,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
    attempt: AuthAttempt = Depends(auth_attempt)
):
    with attempt:
        user = auth.register(payload)
    set_session_cookie(request, response, auth.open_session(user))
    return {"user": serialize_user(user), "message": "Welcome to CampShare!"}


@router.post("/login")
def login(
    payload: UserLogin,
    request: Request,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
    attempt: AuthAttempt = Depends(auth_attempt)
):
    with attempt:
        user = auth.authenticate(payload.username, payload.password)
    set_session_cookie(request, response, auth.open_session(user))
    return {"user": serialize_user(user), "message": "Welcome back!"}


@router.get("/logout")
def logout(
    request: Request,
    response: Response,
    user=Depends(is_logged_in),
    auth: AuthService = Depends(get_auth_service)
):
    token = read_session_token(request)
    if token:
        auth.close_session(token)
    clear_session_cookie(request, response)
    return {"message": "Goodbye!"}


@router.get("/current-user")
def current_user(user=Depends(get_current_user)):
    if user is None:
        return JSONResponse(status_code=401, content={"user": None})
    return {"user": serialize_user(user)}
