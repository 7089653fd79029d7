"""Appointment record store table using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, VARCHAR

# Metadata for the appointment record store
metadata = MetaData()

# Appointments table, keyed by (subject, appointment)
appointments = Table(
    "appointments",
    metadata,
    Column("subject_id", Text, nullable=False),
    Column("appointment_id", Text, nullable=False),
    # Appointment details
    Column("schedule_slot_id", Integer, nullable=False),
    Column("country_code", VARCHAR(2), nullable=False),
    # Status management
    Column(
        "status",
        Text,
        nullable=False,
        server_default="pending",
    ),
    # Audit fields
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    # Constraints
    PrimaryKeyConstraint("subject_id", "appointment_id", name="appointments_pkey"),
    CheckConstraint(
        "status IN ('pending', 'completed')",
        name="appointments_status_check",
    ),
    CheckConstraint("schedule_slot_id > 0", name="appointments_schedule_slot_check"),
)
