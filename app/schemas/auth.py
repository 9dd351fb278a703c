from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from uuid import UUID

from app.models.user import UserRole
from app.schemas.user import UserRead


# -------------------------------------------------------------------
# REGISTER REQUEST (self-service)
# -------------------------------------------------------------------
class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)

    class Config:
        json_schema_extra = {
            "examples": [
                {
                    "name": "Ada Obi",
                    "email": "ada@example.com",
                    "password": "secret123"
                }
            ]
        }


class RegisterResponse(BaseModel):
    message: str
    email: EmailStr


# -------------------------------------------------------------------
# OTP
# -------------------------------------------------------------------
class VerifyOTPRequest(BaseModel):
    email: EmailStr
    otp: str = Field(..., min_length=6, max_length=6)


class ResendOTPRequest(BaseModel):
    email: EmailStr


# -------------------------------------------------------------------
# LOGIN REQUEST
# -------------------------------------------------------------------
class LoginRequest(BaseModel):
    email: EmailStr
    password: str


# -------------------------------------------------------------------
# TOKEN + USER DETAILS (Used for login response)
# -------------------------------------------------------------------
class TokenWithUser(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    user: UserRead


# -------------------------------------------------------------------
# PASSWORD FLOWS
# -------------------------------------------------------------------
class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    email: EmailStr
    token: str = Field(..., min_length=6, max_length=6)
    new_password: str = Field(..., min_length=6)


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


# -------------------------------------------------------------------
# ROLE MANAGEMENT (power admin)
# -------------------------------------------------------------------
class PromoteRequest(BaseModel):
    email: EmailStr
    role: str
    managed_department_id: Optional[UUID] = None


class DemoteRequest(BaseModel):
    email: EmailStr


class RoleChangeResponse(BaseModel):
    message: str
    user: UserRead
    previous_role: Optional[UserRole] = None


class MessageResponse(BaseModel):
    message: str
