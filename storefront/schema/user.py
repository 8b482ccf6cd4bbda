import uuid
from datetime import datetime
from typing import Optional
from sqlalchemy import DateTime, Uuid
from sqlmodel import Column, SQLModel, Field, String
from uuid6 import uuid7
from storefront.common.utils import now


class Users(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)  #* optional only until the row is flushed
    public_id: uuid.UUID = Field(
        default_factory=uuid7,
        sa_column=Column(Uuid(as_uuid=True), unique=True, index=True, nullable=False)
    )
    # always stored lower-cased , uniqueness is therefore case-insensitive
    email: str = Field(sa_column=Column(String(320), unique=True, index=True, nullable=False))
    name: Optional[str] = Field(default=None, sa_column=Column(String(128), nullable=True))
    role: str = Field(default="user", sa_column=Column(String(32), nullable=False, default="user"))
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now))
    updated_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))

    deleted_at: Optional[datetime] = Field(default=None,
        sa_column=Column(DateTime(timezone=True)))
