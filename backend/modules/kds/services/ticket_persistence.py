# backend/modules/kds/services/ticket_persistence.py

"""
Durable snapshots of the ticket store.

Every save writes the complete list of tickets; every load returns the
complete list. Loading never fails: a missing, empty or unreadable snapshot
yields an empty list so the service can always start.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional
import json
import logging
import os
import tempfile

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from core.config import Settings, settings as default_settings
from core.database import Base, create_db_engine, create_session_factory
from core.exceptions import PersistenceError
from ..models.ticket_models import TicketSnapshot
from ..schemas.ticket_schemas import Ticket

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def _parse_tickets(records: Any, origin: str) -> List[Ticket]:
    """Validate raw snapshot records, skipping the ones that do not parse"""
    if not isinstance(records, list):
        logger.warning(f"Ticket snapshot {origin} has no order list, starting empty")
        return []

    tickets = []
    for index, record in enumerate(records):
        try:
            tickets.append(Ticket.model_validate(record))
        except ValidationError as e:
            logger.warning(
                f"Skipping unreadable ticket #{index} in {origin}: {e.error_count()} errors"
            )
    return tickets


class BaseTicketPersistence(ABC):
    """Interface for ticket snapshot backends"""

    @abstractmethod
    def save(self, tickets: List[Ticket]) -> None:
        """Persist the full list of tickets, raising PersistenceError on failure"""
        pass

    @abstractmethod
    def load(self) -> List[Ticket]:
        """Return the last saved tickets, or an empty list"""
        pass

    def close(self) -> None:
        """Release backend resources"""
        pass


class JsonFileTicketPersistence(BaseTicketPersistence):
    """Snapshot stored as a single JSON document, replaced atomically"""

    def __init__(self, path: str):
        self.path = Path(path)

    def save(self, tickets: List[Ticket]) -> None:
        document = {
            "version": SNAPSHOT_VERSION,
            "savedAt": datetime.now(timezone.utc).isoformat(),
            "orders": [ticket.to_wire() for ticket in tickets],
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", dir=str(self.path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(document, fh, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceError(f"Could not write {self.path}: {e}") from e

    def load(self) -> List[Ticket]:
        if not self.path.exists():
            logger.info(f"No ticket snapshot at {self.path}, starting empty")
            return []

        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error(f"Could not read ticket snapshot {self.path}: {e}")
            return []

        if not raw.strip():
            logger.warning(f"Ticket snapshot {self.path} is empty, starting empty")
            return []

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Ticket snapshot {self.path} is not valid JSON: {e}")
            return []

        records = document.get("orders") if isinstance(document, dict) else document
        tickets = _parse_tickets(records, str(self.path))
        logger.info(f"Loaded {len(tickets)} tickets from {self.path}")
        return tickets


class SqlTicketPersistence(BaseTicketPersistence):
    """Snapshot stored in a relational table through SQLAlchemy"""

    def __init__(self, database_url: str, echo: Optional[bool] = None):
        self.engine = create_db_engine(database_url, echo=echo)
        self.session_factory = create_session_factory(self.engine)
        self._schema_ready = False

    def _ensure_schema(self) -> None:
        if not self._schema_ready:
            Base.metadata.create_all(bind=self.engine, tables=[TicketSnapshot.__table__])
            self._schema_ready = True

    def save(self, tickets: List[Ticket]) -> None:
        try:
            self._ensure_schema()
            with self.session_factory() as db:
                try:
                    db.query(TicketSnapshot).delete()
                    for position, ticket in enumerate(tickets):
                        db.add(
                            TicketSnapshot(
                                order_id=ticket.order_id,
                                position=position,
                                status=ticket.status.value,
                                payload=ticket.to_wire(),
                            )
                        )
                    db.commit()
                except SQLAlchemyError:
                    db.rollback()
                    raise
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not write ticket snapshot: {e}") from e

    def load(self) -> List[Ticket]:
        try:
            self._ensure_schema()
            with self.session_factory() as db:
                rows = (
                    db.query(TicketSnapshot)
                    .order_by(TicketSnapshot.position)
                    .all()
                )
                records = [row.payload for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Could not read ticket snapshot from database: {e}")
            return []

        tickets = _parse_tickets(records, "database")
        logger.info(f"Loaded {len(tickets)} tickets from database")
        return tickets

    def close(self) -> None:
        self.engine.dispose()


def create_persistence(config: Settings = None) -> BaseTicketPersistence:
    """Build the persistence backend selected in settings"""
    config = config or default_settings
    if config.persistence_backend == "sql":
        return SqlTicketPersistence(config.database_url)
    return JsonFileTicketPersistence(config.data_file)
