from pydantic import BaseModel, EmailStr, field_validator

from oralscan.models.enums import Role


class Principal(BaseModel):
    """An identity confirmed by the identity provider."""

    id: str
    email: str
    full_name: str = ""

    model_config = {"frozen": True}


class UserCreate(BaseModel):
    email: EmailStr
    password: str
    full_name: str = ""

    @field_validator("password")
    @classmethod
    def password_min_length(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters.")
        return v


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class PrincipalResponse(BaseModel):
    id: str
    email: str
    full_name: str = ""
    role: Role | None = None


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: Role
