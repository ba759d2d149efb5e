"""
Organization model.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from policyctl import codec
from policyctl.models.acl_policy import ACLPolicy
from policyctl.models.database import Base


def _utcnow():
    """Get current UTC time."""
    return datetime.now(timezone.utc)


class ACLPolicyType(TypeDecorator):
    """Stores an ACLPolicy as JSON text."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Optional[ACLPolicy], dialect) -> Optional[str]:
        if value is None:
            return None
        return codec.encode(value)

    def process_result_value(self, value, dialect) -> Optional[ACLPolicy]:
        if value is None:
            return None
        return codec.decode_column(value)


class Organization(Base):
    """Organization owning a single access-control policy."""

    __tablename__ = "organizations"
    __table_args__ = (
        UniqueConstraint("name", "provider", name="idx_name_provider"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    stable_id: Mapped[str] = mapped_column(
        String(64), unique=True, default=lambda: uuid.uuid4().hex
    )
    name: Mapped[str] = mapped_column(String(255))
    provider: Mapped[str] = mapped_column(String(255))
    expiry_duration: Mapped[int] = mapped_column(Integer, default=180)
    enable_magic: Mapped[bool] = mapped_column(Boolean, default=False)
    magic_dns_domain: Mapped[str] = mapped_column(String(255), default="")
    override_local: Mapped[bool] = mapped_column(Boolean, default=False)
    acl_policy: Mapped[Optional[ACLPolicy]] = mapped_column(ACLPolicyType, nullable=True)
    navi_deploy_key: Mapped[str] = mapped_column(Text, default="")
    navi_deploy_pub: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name}, provider={self.provider})>"
