"""
Authentication routes.
"""
import logging

from fastapi import APIRouter, Depends, Request, Response, status

from bootcamp_api.auth.dependencies import (
    clear_auth_cookie,
    get_current_session,
    get_current_user,
    set_auth_cookie,
)
from bootcamp_api.auth.session import AuthenticatedSession, SessionAuthenticator
from bootcamp_api.auth.utils import hash_password
from bootcamp_api.errors import NotFound, UpstreamFailure
from bootcamp_api.models.common import MessageResponse, StatusResponse
from bootcamp_api.models.user import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    SignupRequest,
    UpdatePasswordRequest,
    UserInDB,
    UserResponse,
)
from bootcamp_api.services.email import EmailService
from bootcamp_api.services.firestore import FirestoreService

logger = logging.getLogger(__name__)
router = APIRouter()


def _auth_response(request: Request, response: Response, user: UserInDB, token: str) -> AuthResponse:
    set_auth_cookie(request, response, token)
    return AuthResponse(token=token, data=UserResponse(**user.model_dump()))


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(payload: SignupRequest, request: Request, response: Response):
    """
    Register a new user and start a session.
    """
    firestore = FirestoreService()
    user = await firestore.create_user(
        name=payload.name,
        email=payload.email,
        password_hash=hash_password(payload.password),
        role=payload.role.value,
    )

    token = await SessionAuthenticator(firestore).issue_token(user)

    try:
        await EmailService().send_email(
            user.email,
            "Thanks for joining in!",
            f"Welcome to the app, {user.name}. Let me know how you get along with it.",
        )
    except UpstreamFailure:
        logger.warning("Welcome email not sent to user %s", user.id)

    return _auth_response(request, response, user, token)


@router.post("/login", response_model=AuthResponse)
async def login(payload: LoginRequest, request: Request, response: Response):
    """
    Authenticate user, set the session cookie and return the token.
    """
    auth = SessionAuthenticator()
    user = await auth.authenticate(payload.email, payload.password)
    token = await auth.issue_token(user)
    return _auth_response(request, response, user, token)


@router.post("/forgotPassword", response_model=MessageResponse)
async def forgot_password(payload: ForgotPasswordRequest, request: Request):
    """
    Email a single-use password reset link.
    If the email cannot be sent, the stored reset token is discarded.
    """
    firestore = FirestoreService()
    user = await firestore.get_user_by_email(payload.email)
    if user is None:
        raise NotFound("There is no user with that email address")

    auth = SessionAuthenticator(firestore)
    reset_token = await auth.begin_password_reset(user)
    reset_url = f"{str(request.base_url).rstrip('/')}/api/users/resetPassword/{reset_token}"
    message = (
        f"Hello {user.name}\n\n"
        "You are receiving this email because you (or someone else) has requested "
        "to change the password for your account. Please make a PATCH request to:\n\n"
        f"{reset_url}"
    )

    try:
        await EmailService().send_email(user.email, "Password Reset!", message)
    except UpstreamFailure:
        await auth.cancel_password_reset(user)
        raise

    return MessageResponse(message="Token sent to email")


@router.patch("/resetPassword/{token}", response_model=AuthResponse)
async def reset_password(
    token: str, payload: ResetPasswordRequest, request: Request, response: Response
):
    """Set a new password using a reset token."""
    user, session_token = await SessionAuthenticator().complete_password_reset(
        token, payload.password
    )
    return _auth_response(request, response, user, session_token)


@router.patch("/updatePassword", response_model=AuthResponse)
async def update_password(
    payload: UpdatePasswordRequest,
    request: Request,
    response: Response,
    current_user: UserInDB = Depends(get_current_user),
):
    """Change the password of the logged-in user."""
    user, token = await SessionAuthenticator().change_password(
        current_user, payload.password_current, payload.password
    )
    return _auth_response(request, response, user, token)


@router.post("/logout", response_model=StatusResponse)
async def logout(
    response: Response,
    session: AuthenticatedSession = Depends(get_current_session),
):
    """End the current session only."""
    await SessionAuthenticator().revoke(session.user, session.token)
    clear_auth_cookie(response)
    return StatusResponse()


@router.post("/logoutAll", response_model=StatusResponse)
async def logout_all(
    response: Response,
    session: AuthenticatedSession = Depends(get_current_session),
):
    """End every session of the current user."""
    await SessionAuthenticator().revoke_all(session.user)
    clear_auth_cookie(response)
    return StatusResponse()
