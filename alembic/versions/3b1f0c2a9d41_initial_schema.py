"""initial schema

Revision ID: 3b1f0c2a9d41
Revises:
Create Date: 2026-10-19 12:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "3b1f0c2a9d41"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _cost_columns() -> list:
    return [
        sa.Column(f"cost_{k}", sa.Integer(), nullable=False, server_default="0")
        for k in ("food", "wood", "stone", "ore", "gold")
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("last_played_kingdom", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "sessions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_sessions_user_id"), "sessions", ["user_id"], unique=False)
    op.create_index(op.f("ix_sessions_token"), "sessions", ["token"], unique=True)

    op.create_table(
        "kingdoms",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("size", sa.Integer(), nullable=False, server_default="750"),
        sa.Column("max_players", sa.Integer(), nullable=False, server_default="2000"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "players",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("kingdom_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=40), nullable=False),
        sa.Column("gender", sa.String(length=16), nullable=False),
        sa.Column("avatar", sa.String(length=64), nullable=False),
        sa.Column("last_city", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["kingdom_id"], ["kingdoms.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_players_user_id"), "players", ["user_id"], unique=False)
    op.create_index(op.f("ix_players_kingdom_id"), "players", ["kingdom_id"], unique=False)

    op.create_table(
        "map_tiles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("kingdom_id", sa.Integer(), nullable=False),
        sa.Column("x", sa.Integer(), nullable=False),
        sa.Column("y", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("level", sa.Integer(), nullable=False),
        sa.Column("resources", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(["kingdom_id"], ["kingdoms.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("kingdom_id", "x", "y", name="uq_map_tiles_kingdom_xy"),
    )
    op.create_index(op.f("ix_map_tiles_kingdom_id"), "map_tiles", ["kingdom_id"], unique=False)
    op.create_index(op.f("ix_map_tiles_type"), "map_tiles", ["type"], unique=False)

    op.create_table(
        "cities",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("map_tile_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("age", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("population", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("food", sa.Integer(), nullable=False),
        sa.Column("wood", sa.Integer(), nullable=False),
        sa.Column("stone", sa.Integer(), nullable=False),
        sa.Column("ore", sa.Integer(), nullable=False),
        sa.Column("gold", sa.Integer(), nullable=False),
        sa.Column("last_resource_generation", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"]),
        sa.ForeignKeyConstraint(["map_tile_id"], ["map_tiles.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_cities_player_id"), "cities", ["player_id"], unique=False)
    op.create_index(op.f("ix_cities_map_tile_id"), "cities", ["map_tile_id"], unique=True)

    op.create_table(
        "buildings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("slug", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("field_type", sa.Integer(), nullable=False),
        *_cost_columns(),
        sa.Column("construction_time", sa.Integer(), nullable=False),
        sa.Column("power", sa.Integer(), nullable=False),
        sa.Column("base_value", sa.Integer(), nullable=False),
        sa.Column("bonus_value", sa.Integer(), nullable=False),
        sa.Column("requirements", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_buildings_slug"), "buildings", ["slug"], unique=True)

    op.create_table(
        "research",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("slug", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        *_cost_columns(),
        sa.Column("research_time", sa.Integer(), nullable=False, server_default="300"),
        sa.Column("power", sa.Integer(), nullable=False),
        sa.Column("base_value", sa.Integer(), nullable=False),
        sa.Column("bonus_value", sa.Integer(), nullable=False),
        sa.Column("requirements", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_research_slug"), "research", ["slug"], unique=True)

    op.create_table(
        "player_buildings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("city_id", sa.Integer(), nullable=False),
        sa.Column("building_id", sa.Integer(), nullable=False),
        sa.Column("plot_id", sa.String(length=16), nullable=True),
        sa.Column("level", sa.Integer(), nullable=False),
        sa.Column("is_constructing", sa.Boolean(), nullable=False),
        sa.Column("construction_started_at", sa.DateTime(), nullable=True),
        sa.Column("construction_ends_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"]),
        sa.ForeignKeyConstraint(["city_id"], ["cities.id"]),
        sa.ForeignKeyConstraint(["building_id"], ["buildings.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("city_id", "plot_id", name="uq_player_buildings_city_plot"),
    )
    op.create_index(op.f("ix_player_buildings_player_id"), "player_buildings", ["player_id"], unique=False)
    op.create_index(op.f("ix_player_buildings_city_id"), "player_buildings", ["city_id"], unique=False)
    op.create_index(op.f("ix_player_buildings_building_id"), "player_buildings", ["building_id"], unique=False)
    op.create_index(
        op.f("ix_player_buildings_construction_ends_at"), "player_buildings", ["construction_ends_at"], unique=False
    )

    op.create_table(
        "player_research",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("city_id", sa.Integer(), nullable=False),
        sa.Column("research_id", sa.Integer(), nullable=False),
        sa.Column("level", sa.Integer(), nullable=False),
        sa.Column("is_researching", sa.Boolean(), nullable=False),
        sa.Column("research_started_at", sa.DateTime(), nullable=True),
        sa.Column("research_ends_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"]),
        sa.ForeignKeyConstraint(["city_id"], ["cities.id"]),
        sa.ForeignKeyConstraint(["research_id"], ["research.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("city_id", "research_id", name="uq_player_research_city_research"),
    )
    op.create_index(op.f("ix_player_research_player_id"), "player_research", ["player_id"], unique=False)
    op.create_index(op.f("ix_player_research_city_id"), "player_research", ["city_id"], unique=False)
    op.create_index(op.f("ix_player_research_research_id"), "player_research", ["research_id"], unique=False)
    op.create_index(
        op.f("ix_player_research_research_ends_at"), "player_research", ["research_ends_at"], unique=False
    )

    op.create_table(
        "alliances",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("kingdom_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["kingdom_id"], ["kingdoms.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_alliances_kingdom_id"), "alliances", ["kingdom_id"], unique=False)

    op.create_table(
        "alliance_members",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("alliance_id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("joined_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["alliance_id"], ["alliances.id"]),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("player_id"),
    )
    op.create_index(op.f("ix_alliance_members_alliance_id"), "alliance_members", ["alliance_id"], unique=False)

    op.create_table(
        "chat_rooms",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("kingdom_id", sa.Integer(), nullable=True),
        sa.Column("alliance_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["kingdom_id"], ["kingdoms.id"]),
        sa.ForeignKeyConstraint(["alliance_id"], ["alliances.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_chat_rooms_name"), "chat_rooms", ["name"], unique=True)
    op.create_index(op.f("ix_chat_rooms_kingdom_id"), "chat_rooms", ["kingdom_id"], unique=False)
    op.create_index(op.f("ix_chat_rooms_alliance_id"), "chat_rooms", ["alliance_id"], unique=False)

    op.create_table(
        "chat_messages",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("room_id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("message_type", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["room_id"], ["chat_rooms.id"]),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_chat_messages_room_id"), "chat_messages", ["room_id"], unique=False)
    op.create_index(op.f("ix_chat_messages_player_id"), "chat_messages", ["player_id"], unique=False)
    op.create_index(op.f("ix_chat_messages_created_at"), "chat_messages", ["created_at"], unique=False)


def downgrade() -> None:
    for table in (
        "chat_messages",
        "chat_rooms",
        "alliance_members",
        "alliances",
        "player_research",
        "player_buildings",
        "research",
        "buildings",
        "cities",
        "map_tiles",
        "players",
        "kingdoms",
        "sessions",
        "users",
    ):
        op.drop_table(table)
