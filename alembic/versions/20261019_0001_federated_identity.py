"""federated identity: users + provider_links

Revision ID: 0001
Revises:
Create Date: 2026-10-19

- users: 三方登录账号 (email 可空且唯一，email_verified_at 决定能否按邮箱合并)
- provider_links: (provider, provider_user_id) 与 (user_id, provider) 均唯一，N:1 指向 users
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    json_type = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False, comment="主键 (UUID v7)"),
        sa.Column("name", sa.String(length=100), nullable=False, comment="展示名"),
        sa.Column("avatar", sa.String(length=1024), nullable=True, comment="头像URL"),
        sa.Column("email", sa.String(length=255), nullable=True, comment="用户邮箱"),
        sa.Column(
            "email_verified_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="邮箱验证时间",
        ),
        sa.Column(
            "hashed_password", sa.String(length=255), nullable=False, comment="密码哈希值"
        ),
        sa.Column(
            "is_active",
            sa.Boolean(),
            server_default=sa.text("true"),
            nullable=False,
            comment="是否激活",
        ),
        sa.Column(
            "is_deleted",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
            comment="是否软删除",
        ),
        sa.Column(
            "deleted_at", sa.DateTime(timezone=True), nullable=True, comment="删除时间"
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
            comment="创建时间 (UTC)",
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
            comment="更新时间 (UTC)",
        ),
        sa.CheckConstraint("length(trim(name)) > 0", name="ck_users_name_not_empty"),
        sa.CheckConstraint(
            "length(hashed_password) > 0", name="ck_users_password_not_empty"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "provider_links",
        sa.Column("id", sa.Uuid(), nullable=False, comment="主键 (UUID v7)"),
        sa.Column("user_id", sa.Uuid(), nullable=False, comment="关联用户ID"),
        sa.Column(
            "provider", sa.String(length=20), nullable=False, comment="三方标识"
        ),
        sa.Column(
            "provider_user_id",
            sa.String(length=255),
            nullable=False,
            comment="三方唯一ID (sub)",
        ),
        sa.Column(
            "email", sa.String(length=255), nullable=True, comment="三方最近一次下发的邮箱"
        ),
        sa.Column("extra_data", json_type, nullable=True, comment="三方资料快照"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
            comment="创建时间 (UTC)",
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
            comment="更新时间 (UTC)",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_provider_links_user_id_users"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_provider_links"),
        sa.UniqueConstraint(
            "provider",
            "provider_user_id",
            name="uq_provider_links_provider_identity",
        ),
        sa.UniqueConstraint(
            "user_id", "provider", name="uq_provider_links_user_provider"
        ),
    )
    op.create_index(
        "ix_provider_links_user_id", "provider_links", ["user_id"], unique=False
    )
    op.create_index(
        "ix_provider_links_provider_email",
        "provider_links",
        ["provider", "email"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_provider_links_provider_email", table_name="provider_links")
    op.drop_index("ix_provider_links_user_id", table_name="provider_links")
    op.drop_table("provider_links")
    op.drop_table("users")
