from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Identity(CamelModel):
    """Public view of a user , the password hash never leaves the credential store."""
    id: str
    name: Optional[str] = None
    email: str
    role: str
    external_id: Optional[str] = None
    has_password: bool = False


class RegisterIn(BaseModel):
    name: str = Field(..., min_length=1, examples=["Full Name"])
    email: str = Field(..., examples=["user@example.com"])
    password: str = Field(..., examples=["StrongPassword#1"])


class LoginIn(BaseModel):
    email: str = Field(...)
    password: str = Field(...)


class FederatedLoginIn(CamelModel):
    external_token: str = Field(..., min_length=1)


class SendOtpIn(BaseModel):
    email: str = Field(...)


class VerifyOtpIn(BaseModel):
    email: str = Field(...)
    otp: str = Field(..., min_length=1)
    name: Optional[str] = None
