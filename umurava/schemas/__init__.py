from umurava.schemas.auth import (
    RegisterRequest, LoginRequest, VerifyOTPRequest, ChangePasswordRequest,
    TokenResponse, LoginResponse, MessageResponse,
)
from umurava.schemas.user import UserOut, UserUpdateRequest
