# backend/modules/kds/models/ticket_models.py

"""
Database table backing the SQL snapshot of kitchen tickets.
"""

from sqlalchemy import Column, DateTime, Integer, JSON, String
from sqlalchemy.sql import func

from core.database import Base


class TicketSnapshot(Base):
    """One row per ticket; the whole table is rewritten on every save"""
    __tablename__ = "kds_ticket_snapshots"

    order_id = Column(String(255), primary_key=True)
    position = Column(Integer, nullable=False, index=True)  # store listing order
    status = Column(String(20), nullable=False, index=True)
    payload = Column(JSON, nullable=False)  # ticket in wire format
    saved_at = Column(DateTime(timezone=True), server_default=func.now())
