from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from linkedin_import.db.models import LinkedInImportAudit, LinkedInProfile
from linkedin_import.logging_utils import structured_log
from linkedin_import.services.linkedin.constants import AUDIT_ACTION_FETCHED, IMPORT_STATUS_PENDING
from linkedin_import.services.linkedin.errors import PersistenceError
from linkedin_import.services.linkedin.types import (
    EnrichedProfile,
    RequestMetadata,
    StrategyReport,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfileUpsert:
    user_id: str
    enriched: EnrichedProfile
    raw_profile: dict[str, Any]
    consent_log: dict[str, Any]
    fetched_at: datetime


@dataclass(frozen=True)
class ImportAuditEntry:
    user_id: str
    linkedin_profile_id: int
    action: str
    detail: dict[str, Any]


@dataclass(frozen=True)
class StoredProfile:
    id: int
    linkedin_id: str


class ProfileSink(Protocol):
    async def upsert_profile(self, record: ProfileUpsert) -> StoredProfile: ...

    async def insert_audit(self, entry: ImportAuditEntry) -> None: ...


class SqlProfileSink:
    """Postgres-backed sink: one atomic upsert, then a separate audit insert."""

    def __init__(self, db_session: AsyncSession) -> None:
        self._db_session = db_session

    async def upsert_profile(self, record: ProfileUpsert) -> StoredProfile:
        values = profile_row_values(record)
        statement = pg_insert(LinkedInProfile).values(**values)
        statement = statement.on_conflict_do_update(
            index_elements=[LinkedInProfile.linkedin_id],
            set_={
                **{column: statement.excluded[column] for column in values if column != "linkedin_id"},
                "updated_at": func.now(),
            },
        ).returning(LinkedInProfile.id, LinkedInProfile.linkedin_id)
        try:
            row = (await self._db_session.execute(statement)).one()
            await self._db_session.commit()
        except SQLAlchemyError as exc:
            await self._db_session.rollback()
            logger.exception("linkedin.profile_upsert_failed", extra={"user_id": record.user_id})
            raise PersistenceError("Failed to save profile data.", detail=type(exc).__name__) from exc
        return StoredProfile(id=int(row.id), linkedin_id=str(row.linkedin_id))

    async def insert_audit(self, entry: ImportAuditEntry) -> None:
        self._db_session.add(
            LinkedInImportAudit(
                user_id=entry.user_id,
                linkedin_profile_id=entry.linkedin_profile_id,
                action=entry.action,
                detail=entry.detail,
            )
        )
        try:
            await self._db_session.commit()
        except SQLAlchemyError as exc:
            await self._db_session.rollback()
            raise PersistenceError("Failed to write import audit entry.", detail=type(exc).__name__) from exc


def profile_row_values(record: ProfileUpsert) -> dict[str, Any]:
    profile = record.enriched.profile
    return {
        "user_id": record.user_id,
        "linkedin_id": profile.identity_id,
        "given_name": profile.given_name,
        "family_name": profile.family_name,
        "headline": profile.headline,
        "email": profile.email,
        "avatar_url": profile.avatar_url,
        "profile_url": profile.profile_url,
        "profile_url_guessed": profile.profile_url_guessed,
        "vanity_name": profile.vanity_name,
        "location": profile.location,
        "provenance": provenance_payload(record.enriched),
        "raw_profile": record.raw_profile,
        "import_status": IMPORT_STATUS_PENDING,
        "consent_log": record.consent_log,
        "last_fetched_at": record.fetched_at,
    }


def provenance_payload(enriched: EnrichedProfile) -> dict[str, str | None]:
    return {
        str(field): (str(source) if source is not None else None)
        for field, source in enriched.profile.provenance.items()
    }


def consent_log_payload(metadata: RequestMetadata) -> dict[str, Any]:
    return {
        "consent_ts": metadata.received_at.isoformat(),
        "user_agent": metadata.user_agent,
        "ip": metadata.client_ip,
    }


def raw_profile_snapshot(reports: list[StrategyReport]) -> dict[str, Any]:
    return {
        "sources": {str(report.source): report.payload for report in reports if report.payload is not None},
        "reports": [
            {
                "source": str(report.source),
                "attempted": report.attempted,
                "observation_count": len(report.observations),
                "failures": [
                    {
                        "url": failure.url,
                        "status_code": failure.status_code,
                        "classification": str(failure.failure) if failure.failure else None,
                        "detail": failure.detail,
                    }
                    for failure in report.failures
                ],
            }
            for report in reports
        ],
    }


def audit_entry(*, user_id: str, stored: StoredProfile, enriched: EnrichedProfile, fetched_at: datetime) -> ImportAuditEntry:
    profile = enriched.profile
    return ImportAuditEntry(
        user_id=user_id,
        linkedin_profile_id=stored.id,
        action=AUDIT_ACTION_FETCHED,
        detail={
            "fetched_at": fetched_at.isoformat(),
            "has_headline": bool(profile.headline),
            "has_email": bool(profile.email),
            "has_avatar": bool(profile.avatar_url),
            "has_vanity": bool(profile.vanity_name),
        },
    )


async def record_import(
    sink: ProfileSink,
    *,
    record: ProfileUpsert,
) -> tuple[StoredProfile, bool]:
    """Upsert the profile, then append the audit entry.

    A failed audit write is logged and reported, but the committed upsert stands.
    """
    stored = await sink.upsert_profile(record)
    entry = audit_entry(
        user_id=record.user_id,
        stored=stored,
        enriched=record.enriched,
        fetched_at=record.fetched_at,
    )
    try:
        await sink.insert_audit(entry)
    except PersistenceError as exc:
        structured_log(
            logger,
            "warning",
            "linkedin.audit_write_failed",
            user_id=record.user_id,
            linkedin_profile_id=stored.id,
            detail=exc.detail,
        )
        return stored, False
    return stored, True
