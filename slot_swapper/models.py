# models.py
import sqlalchemy
from slot_swapper.database import metadata

# Read-only mirror of identities owned by the identity provider
users = sqlalchemy.Table(
    "users",
    metadata,
    sqlalchemy.Column("id", sqlalchemy.String(64), primary_key=True),
    sqlalchemy.Column("name", sqlalchemy.String),
    sqlalchemy.Column("email", sqlalchemy.String, unique=True, index=True),
)

slots = sqlalchemy.Table(
    "slots",
    metadata,
    sqlalchemy.Column("id", sqlalchemy.String(32), primary_key=True),
    sqlalchemy.Column("owner_id", sqlalchemy.String(64), nullable=False, index=True),
    sqlalchemy.Column("title", sqlalchemy.String, nullable=False),
    sqlalchemy.Column("start_time", sqlalchemy.DateTime(timezone=True), nullable=False),
    sqlalchemy.Column("end_time", sqlalchemy.DateTime(timezone=True), nullable=False),
    sqlalchemy.Column("status", sqlalchemy.String(16), nullable=False, default="BUSY", index=True),
    sqlalchemy.Column("created_at", sqlalchemy.DateTime(timezone=True)),
)

# Slot references carry no foreign key: resolved requests outlive deleted slots
swap_requests = sqlalchemy.Table(
    "swap_requests",
    metadata,
    sqlalchemy.Column("id", sqlalchemy.String(32), primary_key=True),
    sqlalchemy.Column("requester_user_id", sqlalchemy.String(64), nullable=False, index=True),
    sqlalchemy.Column("target_user_id", sqlalchemy.String(64), nullable=False, index=True),
    sqlalchemy.Column("requester_slot_id", sqlalchemy.String(32), nullable=False),
    sqlalchemy.Column("target_slot_id", sqlalchemy.String(32), nullable=False),
    sqlalchemy.Column("status", sqlalchemy.String(16), nullable=False, default="PENDING"),
    sqlalchemy.Column("created_at", sqlalchemy.DateTime(timezone=True)),
    sqlalchemy.Column("responded_at", sqlalchemy.DateTime(timezone=True), nullable=True),
)
