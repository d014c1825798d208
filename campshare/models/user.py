import re

from pydantic import BaseModel, EmailStr, Field, field_validator

MIN_PASSWORD_LENGTH = 8


def check_password_strength(password):
    """Return an error message for a weak password, or None when it is acceptable."""
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."
    if not re.search(r"[A-Z]", password) or not re.search(r"[a-z]", password) or not re.search(r"[0-9]", password):
        return "Password must contain at least one uppercase letter, one lowercase letter and one number."
    return None


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        error = check_password_strength(v)
        if error:
            raise ValueError(error)
        return v


class UserLogin(BaseModel):
    username: str
    password: str
