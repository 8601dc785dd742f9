"""initial cafeteria schema

Revision ID: 202509170000
Revises:
Create Date: 2025-09-17 00:00:00.000000

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "202509170000"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "budgets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column(
            "budget_type",
            sa.Enum("daily", "weekly", name="budgettype"),
            nullable=False,
        ),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("amount_cents > 0", name="ck_budget_amount_positive"),
    )
    op.create_index(
        "ix_budgets_user_type_active",
        "budgets",
        ["user_id", "budget_type", "is_active"],
    )

    op.create_table(
        "menu_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price_cents", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(length=60), nullable=False),
        sa.Column("dietary_tags_json", sa.Text(), nullable=True),
        sa.Column("available_date", sa.Date(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("price_cents > 0", name="ck_menu_item_price_positive"),
    )
    op.create_index(
        "ix_menu_items_date_available",
        "menu_items",
        ["available_date", "is_available"],
    )

    op.create_table(
        "purchases",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column(
            "menu_item_id",
            sa.Integer(),
            sa.ForeignKey("menu_items.id"),
            nullable=False,
        ),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("transaction_date", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("amount_cents >= 0", name="ck_purchase_amount_positive"),
        sa.CheckConstraint("quantity > 0", name="ck_purchase_quantity_positive"),
    )
    op.create_index(
        "ix_purchases_user_date", "purchases", ["user_id", "transaction_date"]
    )

    op.create_table(
        "meal_recommendations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("recommended_date", sa.Date(), nullable=False),
        sa.Column(
            "menu_item_ids_json", sa.Text(), nullable=False, server_default="[]"
        ),
        sa.Column("total_estimated_cost_cents", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "user_id", "recommended_date", name="uq_recommendation_user_date"
        ),
        sa.CheckConstraint(
            "total_estimated_cost_cents >= 0",
            name="ck_recommendation_cost_positive",
        ),
    )


def downgrade() -> None:
    op.drop_table("meal_recommendations")
    op.drop_index("ix_purchases_user_date", table_name="purchases")
    op.drop_table("purchases")
    op.drop_index("ix_menu_items_date_available", table_name="menu_items")
    op.drop_table("menu_items")
    op.drop_index("ix_budgets_user_type_active", table_name="budgets")
    op.drop_table("budgets")
