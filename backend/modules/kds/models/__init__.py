# backend/modules/kds/models/__init__.py

"""
Kitchen Display System models.
"""

from .ticket_models import TicketSnapshot

__all__ = [
    "TicketSnapshot",
]
