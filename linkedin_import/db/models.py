from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from linkedin_import.db.base import Base


class LinkedInProfile(Base):
    __tablename__ = "linkedin_profiles"
    __table_args__ = (Index("ix_linkedin_profiles_user_id", "user_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    linkedin_id: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    given_name: Mapped[str] = mapped_column(String(255), nullable=False, server_default=text("''"))
    family_name: Mapped[str] = mapped_column(String(255), nullable=False, server_default=text("''"))
    headline: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))
    email: Mapped[str] = mapped_column(String(320), nullable=False, server_default=text("''"))
    avatar_url: Mapped[str | None] = mapped_column(Text)
    profile_url: Mapped[str | None] = mapped_column(Text)
    profile_url_guessed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )
    vanity_name: Mapped[str | None] = mapped_column(String(255))
    location: Mapped[str | None] = mapped_column(String(255))
    provenance: Mapped[dict] = mapped_column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))
    raw_profile: Mapped[dict] = mapped_column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))
    import_status: Mapped[str] = mapped_column(String(32), nullable=False, server_default=text("'pending'"))
    consent_log: Mapped[dict] = mapped_column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))
    last_fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class LinkedInImportAudit(Base):
    __tablename__ = "linkedin_import_audit"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    linkedin_profile_id: Mapped[int] = mapped_column(
        ForeignKey("linkedin_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    detail: Mapped[dict] = mapped_column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
