"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Creates all tables for the potluck bot:
users, events, rsvps, allergens, dishes, dish_allergens,
and seeds the reference allergen list.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

event_status = sa.Enum("active", "cancelled", "completed", name="eventstatus")
food_mode = sa.Enum("categories", "slots", name="foodmode")
rsvp_status = sa.Enum("going", "maybe", "declined", name="rsvpstatus")
dish_category = sa.Enum("main", "side", "dessert", "drink", "other", name="dishcategory")


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("tg_id", sa.BigInteger, primary_key=True, autoincrement=False),
        sa.Column("username", sa.String(64), nullable=True),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # --- events ---
    op.create_table(
        "events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("creator_id", sa.BigInteger, sa.ForeignKey("users.tg_id"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("location", sa.String(500), nullable=True),
        sa.Column("event_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("max_attendees", sa.Integer, nullable=True),
        sa.Column("allow_guests", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("food_mode", food_mode, nullable=False, server_default="categories"),
        sa.Column("status", event_status, nullable=False, server_default="active"),
        sa.Column("share_token", sa.String(32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_events_creator_id", "events", ["creator_id"])

    # --- rsvps ---
    op.create_table(
        "rsvps",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("user_id", sa.BigInteger, sa.ForeignKey("users.tg_id"), nullable=False),
        sa.Column("status", rsvp_status, nullable=False),
        sa.Column("guest_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("guest_names", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("event_id", "user_id", name="uq_rsvps_event_user"),
        sa.CheckConstraint("guest_count >= 0", name="ck_rsvps_guest_count"),
    )
    op.create_index("ix_rsvps_event_id", "rsvps", ["event_id"])

    # --- allergens ---
    allergens = op.create_table(
        "allergens",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("is_dietary_preference", sa.Boolean, nullable=False, server_default=sa.false()),
    )

    # --- dishes ---
    op.create_table(
        "dishes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("rsvp_id", sa.String(36), sa.ForeignKey("rsvps.id"), nullable=False),
        sa.Column("category", dish_category, nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_dishes_rsvp_id", "dishes", ["rsvp_id"])

    # --- dish_allergens ---
    op.create_table(
        "dish_allergens",
        sa.Column("dish_id", sa.String(36), sa.ForeignKey("dishes.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("allergen_id", sa.Integer, sa.ForeignKey("allergens.id"), primary_key=True),
    )

    op.bulk_insert(allergens, [
        {"id": 1, "name": "vegan", "display_name": "Vegan", "is_dietary_preference": True},
        {"id": 2, "name": "vegetarian", "display_name": "Vegetarian", "is_dietary_preference": True},
        {"id": 3, "name": "gluten_free", "display_name": "Gluten-free", "is_dietary_preference": True},
        {"id": 4, "name": "dairy", "display_name": "Dairy", "is_dietary_preference": False},
        {"id": 5, "name": "nuts", "display_name": "Nuts", "is_dietary_preference": False},
        {"id": 6, "name": "peanuts", "display_name": "Peanuts", "is_dietary_preference": False},
        {"id": 7, "name": "eggs", "display_name": "Eggs", "is_dietary_preference": False},
        {"id": 8, "name": "shellfish", "display_name": "Shellfish", "is_dietary_preference": False},
        {"id": 9, "name": "fish", "display_name": "Fish", "is_dietary_preference": False},
        {"id": 10, "name": "wheat", "display_name": "Wheat", "is_dietary_preference": False},
        {"id": 11, "name": "soy", "display_name": "Soy", "is_dietary_preference": False},
        {"id": 12, "name": "sesame", "display_name": "Sesame", "is_dietary_preference": False},
    ])


def downgrade() -> None:
    op.drop_table("dish_allergens")
    op.drop_index("ix_dishes_rsvp_id", table_name="dishes")
    op.drop_table("dishes")
    op.drop_table("allergens")
    op.drop_index("ix_rsvps_event_id", table_name="rsvps")
    op.drop_table("rsvps")
    op.drop_index("ix_events_creator_id", table_name="events")
    op.drop_table("events")
    op.drop_table("users")
    for enum_type in (dish_category, rsvp_status, food_mode, event_status):
        enum_type.drop(op.get_bind(), checkfirst=True)
