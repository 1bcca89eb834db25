# auditcast/infrastructure/database/models.py

from sqlalchemy import Column, DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from auditcast.infrastructure.database.session import Base


class User(Base):
    """Principals and the tenant (family/company workspace) they currently act in."""

    __tablename__ = "users"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=True)
    email = Column(String, nullable=True, unique=True)
    family_id = Column(String, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AuditLog(Base):
    """Append-only audit trail. Rows are never updated or deleted."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_partition_timestamp", "partition_key", "timestamp"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor_id = Column(String, nullable=True)
    action = Column(String, nullable=False)
    entity_type = Column(String, nullable=False)
    entity_id = Column(String, nullable=True)
    details = Column(Text, nullable=True)
    previous_state = Column(JSONB, nullable=True)
    changes = Column(JSONB, nullable=True)
    partition_key = Column(String, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
