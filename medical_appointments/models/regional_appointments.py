"""Regional appointments table, one copy per country database."""

from sqlalchemy import (
    BigInteger,
    Column,
    Identity,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, VARCHAR

# Metadata for the regional stores
metadata = MetaData()

regional_appointments = Table(
    "regional_appointments",
    metadata,
    Column("id", BigInteger, Identity(), primary_key=True),
    Column("appointment_id", Text, nullable=False),
    Column("subject_id", Text, nullable=False),
    Column("schedule_slot_id", Integer, nullable=False),
    Column("country_code", VARCHAR(2), nullable=False),
    # Write-once copy, never moves past pending
    Column("status", Text, nullable=False, server_default="pending"),
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    # Absorbs duplicate deliveries of the same request
    UniqueConstraint("appointment_id", name="regional_appointments_appointment_id_key"),
)
