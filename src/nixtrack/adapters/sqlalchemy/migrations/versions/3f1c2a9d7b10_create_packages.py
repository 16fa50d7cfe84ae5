"""create packages table

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 09:00:00

"""
from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "3f1c2a9d7b10"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "packages",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("attr_path", sa.String(), nullable=False),
        sa.Column("version_nixpkgs_master", sa.String(), nullable=True),
        sa.Column("version_nixpkgs_staging", sa.String(), nullable=True),
        sa.Column("version_nixpkgs_staging_next", sa.String(), nullable=True),
        sa.Column("version_repology", sa.String(), nullable=True),
        sa.Column("version_github", sa.String(), nullable=True),
        sa.Column("version_gitlab", sa.String(), nullable=True),
        sa.Column("version_pypi", sa.String(), nullable=True),
        sa.Column("state_pending_pr", sa.String(), nullable=True),
        sa.Column("project_repology", sa.String(), nullable=True),
        sa.Column("nixpkgs_name_repology", sa.String(), nullable=True),
        sa.Column("owner_github", sa.String(), nullable=True),
        sa.Column("repo_github", sa.String(), nullable=True),
        sa.Column("owner_gitlab", sa.String(), nullable=True),
        sa.Column("repo_gitlab", sa.String(), nullable=True),
        sa.Column("last_checked_nixpkgs_master", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_checked_nixpkgs_staging", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_checked_nixpkgs_staging_next", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_checked_repology", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_checked_github", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_checked_gitlab", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_checked_pypi", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_checked_pending_pr", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_update_attempt", sa.DateTime(timezone=True), nullable=True),
        sa.Column("pending_pr", sa.String(), nullable=True),
        sa.Column("pending_pr_owner", sa.String(), nullable=True),
        sa.Column("pending_pr_branch_name", sa.String(), nullable=True),
        sa.Column("last_update_log", sa.Text(), nullable=True),
        sa.Column("revision", sa.Integer(), nullable=False, server_default="0"),
        sa.CheckConstraint(
            "(pending_pr IS NULL AND pending_pr_owner IS NULL AND pending_pr_branch_name IS NULL)"
            " OR (pending_pr IS NOT NULL AND pending_pr_owner IS NOT NULL"
            " AND pending_pr_branch_name IS NOT NULL)",
            name=op.f("ck_packages_pending_pr_all_or_nothing"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_packages")),
    )


def downgrade() -> None:
    op.drop_table("packages")
