import re

from pydantic import EmailStr, Field, field_validator

from app.schemas.common import CamelModel
from app.schemas.user import UserOut

_STUDENT_ID = re.compile(r"^[0-9]{4}/[0-9]{6}$")
_PHONE = re.compile(r"^(\+234|0)[789][01]\d{8}$")


def _validate_password_length(value: str) -> str:
    # bcrypt only looks at the first 72 bytes.
    if len(value.encode("utf-8")) > 72:
        raise ValueError("Password too long (max 72 bytes)")
    return value


class RegisterRequest(CamelModel):
    full_name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    student_id: str
    password: str = Field(..., min_length=8)
    phone_number: str | None = None
    department: str | None = Field(default=None, max_length=128)
    level: str | None = Field(default=None, max_length=32)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("student_id")
    @classmethod
    def _check_student_id(cls, value: str) -> str:
        value = value.strip()
        if not _STUDENT_ID.match(value):
            raise ValueError("Student ID must be in format: YYYY/XXXXXX (e.g., 2024/123456)")
        return value

    @field_validator("phone_number")
    @classmethod
    def _check_phone(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        value = value.strip()
        if not _PHONE.match(value):
            raise ValueError("Phone number must be a valid Nigerian phone number")
        return value

    @field_validator("password")
    @classmethod
    def _check_password(cls, value: str) -> str:
        return _validate_password_length(value)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("password")
    @classmethod
    def _check_password(cls, value: str) -> str:
        return _validate_password_length(value)


class AuthOut(CamelModel):
    token: str
    token_type: str = "bearer"
    user: UserOut
