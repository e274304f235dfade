from typing import Optional

from pydantic import BaseModel, Field, field_validator


class AdminAuthIn(BaseModel):
    # plain str: the allow-list decides, not address syntax
    email: str = Field(max_length=320)
    password: Optional[str] = Field(default=None, max_length=128)

    @field_validator("email")
    @classmethod
    def _normalize(cls, v: str) -> str:
        return v.strip().lower()


class AdminVerifyIn(BaseModel):
    token: str = Field(min_length=1)


class AdminAuthOut(BaseModel):
    authenticated: bool = True
    token: str
    message: str = "Admin access granted"


class AdminUserOut(BaseModel):
    email: str


class AdminVerifyOut(BaseModel):
    authenticated: bool = True
    user: AdminUserOut
