"""Initial translation and token ledger schema

Revision ID: 4b1f0c2a9d3e
Revises:
Create Date: 2026-10-19 09:12:44.318207

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4b1f0c2a9d3e"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# Enum types are created once up front; several tables share translation_engine_enum.
resource_type_enum = postgresql.ENUM(
    "PRODUCT",
    "COLLECTION",
    "PAGE",
    "ARTICLE",
    "BLOG",
    "MENU",
    "METAFIELD",
    "THEME",
    name="resource_type_enum",
    create_type=False,
)
resource_translation_status_enum = postgresql.ENUM(
    "NOT_TRANSLATED",
    "PARTIALLY_COMPLETED",
    "COMPLETED",
    name="resource_translation_status_enum",
    create_type=False,
)
translation_engine_enum = postgresql.ENUM(
    "DEEPL", "GOOGLE", "OPENAI", "GEMINI", name="translation_engine_enum", create_type=False
)
translation_job_status_enum = postgresql.ENUM(
    "PENDING",
    "PROCESSING",
    "COMPLETED",
    "FAILED",
    name="translation_job_status_enum",
    create_type=False,
)
translation_status_enum = postgresql.ENUM(
    "PENDING", "COMPLETED", "FAILED", name="translation_status_enum", create_type=False
)
glossary_rule_type_enum = postgresql.ENUM(
    "DO_NOT_TRANSLATE", "CUSTOM_TRANSLATION", name="glossary_rule_type_enum", create_type=False
)
token_transaction_type_enum = postgresql.ENUM(
    "PURCHASE", "USAGE", name="token_transaction_type_enum", create_type=False
)

_ENUMS = (
    resource_type_enum,
    resource_translation_status_enum,
    translation_engine_enum,
    translation_job_status_enum,
    translation_status_enum,
    glossary_rule_type_enum,
    token_transaction_type_enum,
)


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name, sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
    )


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    for enum_type in _ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "shops",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("shop_domain", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id", name="pk_shops"),
    )
    op.create_index("ix_shops_shop_domain", "shops", ["shop_domain"], unique=True)

    op.create_table(
        "languages",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(length=10), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("native_name", sa.String(length=100), nullable=False),
        sa.Column("is_rtl", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_languages"),
    )
    op.create_index("ix_languages_code", "languages", ["code"], unique=True)

    op.create_table(
        "resources",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("shop_id", sa.Uuid(), nullable=False),
        sa.Column("resource_type", resource_type_enum, nullable=False),
        sa.Column("external_id", sa.String(length=255), nullable=True),
        sa.Column("title", sa.String(length=512), nullable=True),
        sa.Column("translation_status", resource_translation_status_enum, nullable=False),
        sa.Column("translated_count", sa.Integer(), nullable=False),
        sa.Column("total_languages", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(
            ["shop_id"], ["shops.id"], name="fk_resources_shop_id_shops", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_resources"),
    )
    op.create_index("ix_resources_shop_id", "resources", ["shop_id"])
    op.create_index("ix_resources_external_id", "resources", ["external_id"])

    op.create_table(
        "resource_fields",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("resource_id", sa.Uuid(), nullable=False),
        sa.Column("field_name", sa.String(length=255), nullable=False),
        sa.Column("original_value", sa.Text(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["resource_id"],
            ["resources.id"],
            name="fk_resource_fields_resource_id_resources",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_resource_fields"),
    )
    op.create_index("ix_resource_fields_resource_id", "resource_fields", ["resource_id"])

    op.create_table(
        "glossary_rules",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("shop_id", sa.Uuid(), nullable=False),
        sa.Column("term", sa.String(length=255), nullable=False),
        sa.Column("translation", sa.String(length=255), nullable=True),
        sa.Column("rule", glossary_rule_type_enum, nullable=False),
        sa.Column("case_sensitive", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(
            ["shop_id"], ["shops.id"], name="fk_glossary_rules_shop_id_shops", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_glossary_rules"),
    )
    op.create_index("ix_glossary_rules_shop_id", "glossary_rules", ["shop_id"])
    op.create_index("ix_glossary_rules_is_active", "glossary_rules", ["is_active"])

    op.create_table(
        "translation_jobs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("shop_id", sa.Uuid(), nullable=False),
        sa.Column("resource_id", sa.Uuid(), nullable=False),
        sa.Column("target_language_codes", sa.JSON(), nullable=False),
        sa.Column("engine", translation_engine_enum, nullable=False),
        sa.Column("status", translation_job_status_enum, nullable=False),
        sa.Column("total_fields", sa.Integer(), nullable=False),
        sa.Column("processed_fields", sa.Integer(), nullable=False),
        sa.Column("failed_fields", sa.Integer(), nullable=False),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("celery_task_id", sa.String(length=255), nullable=True),
        _timestamp("created_at"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failed_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(
            ["shop_id"], ["shops.id"], name="fk_translation_jobs_shop_id_shops", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["resource_id"],
            ["resources.id"],
            name="fk_translation_jobs_resource_id_resources",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_translation_jobs"),
    )
    op.create_index("ix_translation_jobs_shop_id", "translation_jobs", ["shop_id"])
    op.create_index("ix_translation_jobs_resource_id", "translation_jobs", ["resource_id"])
    op.create_index("ix_translation_jobs_status", "translation_jobs", ["status"])
    op.create_index(
        "ix_translation_jobs_celery_task_id", "translation_jobs", ["celery_task_id"], unique=True
    )

    op.create_table(
        "translations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("resource_id", sa.Uuid(), nullable=False),
        sa.Column("field_id", sa.Uuid(), nullable=False),
        sa.Column("language_id", sa.Integer(), nullable=False),
        sa.Column("translated_value", sa.Text(), nullable=True),
        sa.Column("status", translation_status_enum, nullable=False),
        sa.Column("engine", translation_engine_enum, nullable=True),
        sa.Column("tokens_used", sa.Integer(), nullable=False),
        sa.Column("is_manual_edit", sa.Boolean(), nullable=False),
        sa.Column("needs_review", sa.Boolean(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(
            ["resource_id"],
            ["resources.id"],
            name="fk_translations_resource_id_resources",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["field_id"],
            ["resource_fields.id"],
            name="fk_translations_field_id_resource_fields",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["language_id"],
            ["languages.id"],
            name="fk_translations_language_id_languages",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_translations"),
        sa.UniqueConstraint(
            "resource_id",
            "field_id",
            "language_id",
            name="uq_translations_resource_id_field_id_language_id",
        ),
    )
    op.create_index("ix_translations_resource_id", "translations", ["resource_id"])
    op.create_index("ix_translations_status", "translations", ["status"])

    op.create_table(
        "token_wallets",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("shop_id", sa.Uuid(), nullable=False),
        sa.Column("balance", sa.Integer(), nullable=False),
        sa.Column("total_purchased", sa.Integer(), nullable=False),
        sa.Column("total_used", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint("balance >= 0", name="ck_token_wallets_balance_non_negative"),
        sa.ForeignKeyConstraint(
            ["shop_id"], ["shops.id"], name="fk_token_wallets_shop_id_shops", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_token_wallets"),
        sa.UniqueConstraint("shop_id", name="uq_token_wallets_shop_id"),
    )

    op.create_table(
        "token_transactions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("wallet_id", sa.Uuid(), nullable=False),
        sa.Column("type", token_transaction_type_enum, nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("balance_before", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(length=512), nullable=True),
        sa.Column("engine", translation_engine_enum, nullable=True),
        sa.Column("resource_type", resource_type_enum, nullable=True),
        sa.Column("resource_id", sa.Uuid(), nullable=True),
        sa.Column("charge_ref", sa.String(length=255), nullable=True),
        sa.Column("amount_paid", sa.Numeric(precision=10, scale=2), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(
            ["wallet_id"],
            ["token_wallets.id"],
            name="fk_token_transactions_wallet_id_token_wallets",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_token_transactions"),
    )
    op.create_index("ix_token_transactions_wallet_id", "token_transactions", ["wallet_id"])
    op.create_index("ix_token_transactions_created_at", "token_transactions", ["created_at"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("token_transactions")
    op.drop_table("token_wallets")
    op.drop_table("translations")
    op.drop_table("translation_jobs")
    op.drop_table("glossary_rules")
    op.drop_table("resource_fields")
    op.drop_table("resources")
    op.drop_table("languages")
    op.drop_table("shops")

    bind = op.get_bind()
    for enum_type in reversed(_ENUMS):
        enum_type.drop(bind, checkfirst=True)
