"""create textbook, section, user_access and user_payment tables

Revision ID: 7c1f2a9d4e10
Revises:
Create Date: 2026-10-18 10:12:44.512093

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import sqlmodel

# revision identifiers, used by Alembic.
revision: str = '7c1f2a9d4e10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    op.create_table(
        "textbook",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("slug", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("title", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("author", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("description", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("total_sections", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_textbook_slug", "textbook", ["slug"], unique=True)

    op.create_table(
        "section",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("textbook_id", sa.Integer(), nullable=False),
        sa.Column("section_number", sa.Integer(), nullable=False),
        sa.Column("resource_id", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("title", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("pdf_blob", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("r2_key", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("r2_url", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("external_key", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("currency_code", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("price_minor_units", sa.Integer(), nullable=False),
        sa.Column("mime_type", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("size_bytes", sa.Integer(), nullable=True),
        sa.Column("sha256", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("word_count", sa.Integer(), nullable=True),
        sa.Column("summary", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("keywords", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["textbook_id"], ["textbook.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_section_textbook_id", "section", ["textbook_id"])
    op.create_index("ix_section_resource_id", "section", ["resource_id"], unique=True)
    op.create_index("ix_section_r2_key", "section", ["r2_key"])

    # search over title / summary / keywords
    op.execute(
        "CREATE INDEX ix_section_search ON section USING GIN "
        "(to_tsvector('english', coalesce(title, '') || ' ' || "
        "coalesce(summary, '') || ' ' || coalesce(keywords, '')))"
    )

    op.create_table(
        "user_access",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("resource_id", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("textbook_id", sa.Integer(), nullable=False),
        sa.Column("granted_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["textbook_id"], ["textbook.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "resource_id", name="uq_user_access"),
    )
    op.create_index("ix_user_access_user_id", "user_access", ["user_id"])
    op.create_index("ix_user_access_resource_id", "user_access", ["resource_id"])

    op.create_table(
        "user_payment",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("resource_id", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("currency_code", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("amount_minor_units", sa.Integer(), nullable=False),
        sa.Column("payment_status", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("payment_method", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("facilitator_tx_id", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_payment_user_id", "user_payment", ["user_id"])
    op.create_index("ix_user_payment_resource_id", "user_payment", ["resource_id"])
    op.create_index("ix_user_payment_facilitator_tx_id", "user_payment", ["facilitator_tx_id"])


def downgrade():
    op.drop_table("user_payment")
    op.drop_table("user_access")
    op.execute("DROP INDEX IF EXISTS ix_section_search")
    op.drop_table("section")
    op.drop_table("textbook")
