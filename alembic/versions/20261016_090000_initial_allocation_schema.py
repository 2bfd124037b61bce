"""Initial prize allocation schema

Revision ID: 5f2a9c1d7e40
Revises:
Create Date: 2026-10-16 09:00:00.000000+00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# Revision identifiers, used by Alembic.
revision: str = "5f2a9c1d7e40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ID_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "organizers",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("email", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("role IN ('organizer','master')", name=op.f("ck_organizers_role_enum")),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_organizers")),
    )
    op.create_index(op.f("ix_organizers_id"), "organizers", ["id"], unique=False)
    op.create_index(op.f("ix_organizers_email"), "organizers", ["email"], unique=True)

    op.create_table(
        "tournaments",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("slug", sa.String(length=100), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("owner_id", ID_TYPE, nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('draft','finalized')", name=op.f("ck_tournaments_status_enum")
        ),
        sa.ForeignKeyConstraint(
            ["owner_id"],
            ["organizers.id"],
            name=op.f("fk_tournaments_owner_id_organizers"),
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_tournaments")),
        sa.UniqueConstraint("slug", name="tournaments_slug_key"),
    )
    op.create_index(op.f("ix_tournaments_owner_id"), "tournaments", ["owner_id"], unique=False)

    op.create_table(
        "rule_configs",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("tournament_id", ID_TYPE, nullable=False),
        sa.Column("strict_age", sa.Boolean(), nullable=True),
        sa.Column("allow_unrated_in_rating", sa.Boolean(), nullable=True),
        sa.Column("allow_missing_dob_for_age", sa.Boolean(), nullable=True),
        sa.Column("max_age_inclusive", sa.Boolean(), nullable=True),
        sa.Column("category_priority_order", sa.JSON(), nullable=True),
        sa.Column("tie_break_strategy", sa.String(length=30), nullable=True),
        sa.Column("multi_prize_policy", sa.String(length=30), nullable=True),
        sa.Column("verbose_logs", sa.Boolean(), nullable=True),
        sa.CheckConstraint(
            "multi_prize_policy IS NULL OR multi_prize_policy IN "
            "('single','main_plus_one_side','unlimited')",
            name=op.f("ck_rule_configs_multi_prize_policy_enum"),
        ),
        sa.ForeignKeyConstraint(
            ["tournament_id"],
            ["tournaments.id"],
            name=op.f("fk_rule_configs_tournament_id_tournaments"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_rule_configs")),
        sa.UniqueConstraint("tournament_id", name="rule_configs_tournament_id_key"),
    )

    op.create_table(
        "competitors",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("tournament_id", ID_TYPE, nullable=False),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("dob", sa.Date(), nullable=True),
        sa.Column("dob_raw", sa.String(length=32), nullable=True),
        sa.Column("dob_imputed", sa.Boolean(), nullable=False),
        sa.Column("gender", sa.String(length=10), nullable=True),
        sa.Column("state", sa.String(length=100), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("club", sa.String(length=255), nullable=True),
        sa.Column("disability", sa.String(length=50), nullable=True),
        sa.Column("group_label", sa.String(length=100), nullable=True),
        sa.Column("type_label", sa.String(length=100), nullable=True),
        sa.ForeignKeyConstraint(
            ["tournament_id"],
            ["tournaments.id"],
            name=op.f("fk_competitors_tournament_id_tournaments"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_competitors")),
    )
    op.create_index(
        "ix_competitors_tournament_rank", "competitors", ["tournament_id", "rank"], unique=False
    )

    op.create_table(
        "categories",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("tournament_id", ID_TYPE, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_main", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("order_idx", sa.Integer(), nullable=False),
        sa.Column("category_type", sa.String(length=30), nullable=False),
        sa.Column("criteria_json", sa.JSON(), nullable=True),
        sa.CheckConstraint(
            "category_type IN ('criteria','youngest_female','youngest_male')",
            name=op.f("ck_categories_category_type_enum"),
        ),
        sa.ForeignKeyConstraint(
            ["tournament_id"],
            ["tournaments.id"],
            name=op.f("fk_categories_tournament_id_tournaments"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_categories")),
    )
    op.create_index(
        op.f("ix_categories_tournament_id"), "categories", ["tournament_id"], unique=False
    )

    op.create_table(
        "prizes",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("category_id", ID_TYPE, nullable=False),
        sa.Column("place", sa.Integer(), nullable=False),
        sa.Column("cash_amount", sa.Float(), nullable=True),
        sa.Column("has_trophy", sa.Boolean(), nullable=False),
        sa.Column("has_medal", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.CheckConstraint("place > 0", name=op.f("ck_prizes_place_positive")),
        sa.ForeignKeyConstraint(
            ["category_id"],
            ["categories.id"],
            name=op.f("fk_prizes_category_id_categories"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_prizes")),
        sa.UniqueConstraint("category_id", "place", name="uq_prize_category_place"),
    )
    op.create_index(op.f("ix_prizes_category_id"), "prizes", ["category_id"], unique=False)

    op.create_table(
        "allocation_versions",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("tournament_id", ID_TYPE, nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("committed_by", ID_TYPE, nullable=False),
        sa.Column("committed_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["committed_by"],
            ["organizers.id"],
            name=op.f("fk_allocation_versions_committed_by_organizers"),
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["tournament_id"],
            ["tournaments.id"],
            name=op.f("fk_allocation_versions_tournament_id_tournaments"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_allocation_versions")),
        sa.UniqueConstraint("tournament_id", "version", name="uq_allocation_version"),
    )

    op.create_table(
        "allocations",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("tournament_id", ID_TYPE, nullable=False),
        sa.Column("version_id", ID_TYPE, nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("prize_id", ID_TYPE, nullable=False),
        sa.Column("competitor_id", ID_TYPE, nullable=False),
        sa.Column("reason_codes", sa.JSON(), nullable=False),
        sa.Column("is_manual", sa.Boolean(), nullable=False),
        sa.Column("decided_by", ID_TYPE, nullable=False),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["competitor_id"],
            ["competitors.id"],
            name=op.f("fk_allocations_competitor_id_competitors"),
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["decided_by"],
            ["organizers.id"],
            name=op.f("fk_allocations_decided_by_organizers"),
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["prize_id"],
            ["prizes.id"],
            name=op.f("fk_allocations_prize_id_prizes"),
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["tournament_id"],
            ["tournaments.id"],
            name=op.f("fk_allocations_tournament_id_tournaments"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["version_id"],
            ["allocation_versions.id"],
            name=op.f("fk_allocations_version_id_allocation_versions"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_allocations")),
        sa.UniqueConstraint(
            "tournament_id", "version", "prize_id", name="uq_allocation_version_prize"
        ),
    )
    op.create_index(
        "ix_allocations_tournament_version",
        "allocations",
        ["tournament_id", "version"],
        unique=False,
    )

    op.create_table(
        "conflicts",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("tournament_id", ID_TYPE, nullable=False),
        sa.Column("type", sa.String(length=30), nullable=False),
        sa.Column("impacted_competitors", sa.JSON(), nullable=False),
        sa.Column("impacted_prizes", sa.JSON(), nullable=False),
        sa.Column("reasons", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("suggested_prize_id", ID_TYPE, nullable=True),
        sa.Column("suggested_competitor_id", ID_TYPE, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('open','resolved')", name=op.f("ck_conflicts_status_enum")),
        sa.CheckConstraint(
            "type IN ('duplicate_award','ineligible_award','tie')",
            name=op.f("ck_conflicts_type_enum"),
        ),
        sa.ForeignKeyConstraint(
            ["tournament_id"],
            ["tournaments.id"],
            name=op.f("fk_conflicts_tournament_id_tournaments"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_conflicts")),
    )
    op.create_index(
        "ix_conflicts_tournament_status", "conflicts", ["tournament_id", "status"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_conflicts_tournament_status", table_name="conflicts")
    op.drop_table("conflicts")
    op.drop_index("ix_allocations_tournament_version", table_name="allocations")
    op.drop_table("allocations")
    op.drop_table("allocation_versions")
    op.drop_index(op.f("ix_prizes_category_id"), table_name="prizes")
    op.drop_table("prizes")
    op.drop_index(op.f("ix_categories_tournament_id"), table_name="categories")
    op.drop_table("categories")
    op.drop_index("ix_competitors_tournament_rank", table_name="competitors")
    op.drop_table("competitors")
    op.drop_table("rule_configs")
    op.drop_index(op.f("ix_tournaments_owner_id"), table_name="tournaments")
    op.drop_table("tournaments")
    op.drop_index(op.f("ix_organizers_email"), table_name="organizers")
    op.drop_index(op.f("ix_organizers_id"), table_name="organizers")
    op.drop_table("organizers")
