"""add organization, payment transaction, weather history and forecast tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "organization",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column(
            "timezone",
            sa.String(length=64),
            nullable=False,
            server_default=sa.text("'Europe/Berlin'"),
        ),
    )

    op.create_table(
        "payment_transaction",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organization_id", sa.Integer(), sa.ForeignKey("organization.id"), nullable=False),
        sa.Column("external_id", sa.String(length=100), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("refunded_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("transaction_date", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_payment_transaction_organization_id", "payment_transaction", ["organization_id"]
    )
    op.create_index(
        "ix_payment_transaction_transaction_date", "payment_transaction", ["transaction_date"]
    )

    op.create_table(
        "weather_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organization_id", sa.Integer(), sa.ForeignKey("organization.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("hour", sa.Integer(), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("temperature", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("precipitation", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("weather_code", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("wind_speed", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("humidity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("pressure", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "data_source",
            sa.String(length=50),
            nullable=False,
            server_default=sa.text("'open-meteo'"),
        ),
        sa.Column(
            "synced_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.UniqueConstraint(
            "organization_id", "date", "hour", name="uq_weather_history_org_date_hour"
        ),
    )
    op.create_index("ix_weather_history_organization_id", "weather_history", ["organization_id"])

    op.create_table(
        "revenue_forecast",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organization_id", sa.Integer(), sa.ForeignKey("organization.id"), nullable=False),
        sa.Column("forecast_date", sa.Date(), nullable=False),
        sa.Column("forecasted_revenue", sa.Numeric(12, 2), nullable=False),
        sa.Column("confidence", sa.Integer(), nullable=False),
        sa.Column("trend", sa.String(length=16), nullable=False),
        sa.Column("historical_average", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("weekly_trend", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("monthly_trend", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("seasonal_factor", sa.Float(), nullable=False, server_default=sa.text("1")),
        sa.Column("weather_factor", sa.Float(), nullable=False, server_default=sa.text("1")),
        sa.Column("forecast_weather", sa.JSON(), nullable=True),
        sa.Column("actual_revenue", sa.Numeric(12, 2), nullable=True),
        sa.Column("accuracy_percentage", sa.Float(), nullable=True),
        sa.Column("accuracy_difference", sa.Float(), nullable=True),
        sa.Column("accuracy_rating", sa.String(length=16), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.UniqueConstraint("organization_id", "forecast_date", name="uq_revenue_forecast_org_date"),
    )
    op.create_index("ix_revenue_forecast_organization_id", "revenue_forecast", ["organization_id"])


def downgrade() -> None:
    op.drop_index("ix_revenue_forecast_organization_id", table_name="revenue_forecast")
    op.drop_table("revenue_forecast")
    op.drop_index("ix_weather_history_organization_id", table_name="weather_history")
    op.drop_table("weather_history")
    op.drop_index("ix_payment_transaction_transaction_date", table_name="payment_transaction")
    op.drop_index("ix_payment_transaction_organization_id", table_name="payment_transaction")
    op.drop_table("payment_transaction")
    op.drop_table("organization")
