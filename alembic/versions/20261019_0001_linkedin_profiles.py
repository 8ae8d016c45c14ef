"""Create linkedin profile and import audit tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "linkedin_profiles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("linkedin_id", sa.String(length=128), nullable=False),
        sa.Column("given_name", sa.String(length=255), nullable=False, server_default=sa.text("''")),
        sa.Column("family_name", sa.String(length=255), nullable=False, server_default=sa.text("''")),
        sa.Column("headline", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("email", sa.String(length=320), nullable=False, server_default=sa.text("''")),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("profile_url", sa.Text(), nullable=True),
        sa.Column(
            "profile_url_guessed",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("vanity_name", sa.String(length=255), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column(
            "provenance",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "raw_profile",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "import_status",
            sa.String(length=32),
            nullable=False,
            server_default=sa.text("'pending'"),
        ),
        sa.Column(
            "consent_log",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("last_fetched_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_linkedin_profiles"),
        sa.UniqueConstraint("linkedin_id", name="uq_linkedin_profiles_linkedin_id"),
    )
    op.create_index("ix_linkedin_profiles_user_id", "linkedin_profiles", ["user_id"])

    op.create_table(
        "linkedin_import_audit",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("linkedin_profile_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(length=32), nullable=False),
        sa.Column(
            "detail",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.ForeignKeyConstraint(
            ["linkedin_profile_id"],
            ["linkedin_profiles.id"],
            name="fk_linkedin_import_audit_linkedin_profile_id_linkedin_profiles",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_linkedin_import_audit"),
    )
    op.create_index(
        "ix_linkedin_import_audit_linkedin_profile_id",
        "linkedin_import_audit",
        ["linkedin_profile_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_linkedin_import_audit_linkedin_profile_id", table_name="linkedin_import_audit")
    op.drop_table("linkedin_import_audit")
    op.drop_index("ix_linkedin_profiles_user_id", table_name="linkedin_profiles")
    op.drop_table("linkedin_profiles")
