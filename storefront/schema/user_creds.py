from datetime import datetime
from enum import Enum
from typing import Optional
from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlmodel import SQLModel, Field

from storefront.common.utils import now

class CredentialType(str, Enum):
    PASSWORD = "password"
    OAUTH = "oauth"


class Credential(SQLModel, table=True):
    """Password hashes and federated (oauth) subject ids, at most one of each type per user."""
    __table_args__ = (
        UniqueConstraint("user_id", "type", name="uq_credential_user_type"),
        UniqueConstraint("provider", "provider_user_id", name="uq_credential_provider_subject"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(sa_column=Column(ForeignKey("users.id", ondelete="CASCADE"),
            index=True,nullable=False))
    type: str = Field(sa_column=Column(String(16), nullable=False))
    provider: Optional[str] = Field(default=None, sa_column=Column(String(64), nullable=True))
    provider_user_id: Optional[str] = Field(default=None,sa_column=Column(String(255), nullable=True))
    password_hash: Optional[str] = Field(default=None, sa_column=Column(Text(),nullable=True))
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), default=now,nullable=False))
    updated_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), default=now,nullable=False, onupdate=now))
    revoked_at: Optional[datetime] = Field(default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True))
