"""Authentication API endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from app.dependencies import CurrentUser, get_account_service, get_current_user
from app.schemas.auth import (
    ActivateRequest,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
)
from app.services.account import AccountService, AuthErrorCode, AuthResult

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])

ERROR_STATUS = {
    AuthErrorCode.CONFLICT: 400,
    AuthErrorCode.INVALID_TOKEN: 400,
    AuthErrorCode.EXPIRED: 400,
    AuthErrorCode.INVALID_OLD_PASSWORD: 400,
    AuthErrorCode.INVALID_CREDENTIALS: 401,
    AuthErrorCode.ACCOUNT_NOT_ACTIVATED: 401,
    AuthErrorCode.NOT_FOUND: 404,
    AuthErrorCode.NOTIFICATION_FAILED: 500,
    AuthErrorCode.INTERNAL: 500,
}


def raise_for_result(result: AuthResult) -> None:
    """Turn a failed AuthResult into an HTTPException."""
    if not result.success:
        status_code = ERROR_STATUS.get(result.error_code, 500)  # type: ignore[arg-type]
        raise HTTPException(status_code=status_code, detail=result.error)


@router.post("/register", response_model=MessageResponse, status_code=201)
def register(body: RegisterRequest, service: AccountService = Depends(get_account_service)) -> MessageResponse:
    """Register a new account and send its activation email."""
    raise_for_result(service.register(body.email, body.password))
    return MessageResponse(message="Registration successful, please check your email to activate your account")


@router.post("/activate", response_model=MessageResponse)
def activate(body: ActivateRequest, service: AccountService = Depends(get_account_service)) -> MessageResponse:
    """Activate an account with the token from the activation email."""
    raise_for_result(service.activate(body.token))
    return MessageResponse(message="Account activated successfully, you can now login")


@router.get("/activate", response_model=MessageResponse)
def activate_link(token: str, service: AccountService = Depends(get_account_service)) -> MessageResponse:
    """Activation link target."""
    raise_for_result(service.activate(token))
    return MessageResponse(message="Account activated successfully, you can now login")


@router.post("/login", response_model=LoginResponse)
def login(body: LoginRequest, service: AccountService = Depends(get_account_service)) -> LoginResponse:
    """Authenticate and receive a JWT token."""
    result = service.login(body.email, body.password)
    raise_for_result(result)
    return LoginResponse(token=result.token, user=UserResponse.model_validate(result.user))  # type: ignore[arg-type]


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    body: ForgotPasswordRequest, service: AccountService = Depends(get_account_service)
) -> MessageResponse:
    """Email a password reset token."""
    raise_for_result(service.forgot_password(body.email))
    return MessageResponse(message="Password reset email sent, please check your email")


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    body: ChangePasswordRequest, service: AccountService = Depends(get_account_service)
) -> MessageResponse:
    """Set a new password using a reset token."""
    raise_for_result(service.change_password(body.token, body.new_password))
    return MessageResponse(message="Password changed successfully, you can now login with your new password")


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    body: ResetPasswordRequest,
    user: CurrentUser = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    """Change the password of the logged-in user, given the old one."""
    raise_for_result(service.reset_password(user.user_id, body.old_password, body.new_password))
    return MessageResponse(message="Password reset successfully")


@router.get("/profile", response_model=UserResponse)
def profile(
    user: CurrentUser = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
) -> UserResponse:
    """Get the logged-in user's profile."""
    result = service.get_profile(user.user_id)
    raise_for_result(result)
    return UserResponse.model_validate(result.user)
