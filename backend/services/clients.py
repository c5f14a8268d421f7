"""
Client Record Store

Owns the fixed-schema client record (id, email, encrypted mobile) and
reconciles it with the attribute store on every read and write.

Key Features:
- Identifiers generated from the client's seed data, never supplied by callers
- Partial updates: omitted fields are left untouched
- Attribute set always re-read from the attribute store after writes
- Delete cascades to attributes (attributes first, then the record)

Consistency:
- No transaction spans the two tables. A failure between the attribute and
  record deletes leaves a partial state; reads always key off the record,
  so leftover attributes are never visible.
- Audit log events never include email or mobile values
"""

import logging
from datetime import datetime, timezone
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database.directory_models import ClientDB
from services.attributes import AttributeStore, ClientAttribute
from services.errors import ValidationError
from services.identifiers import generate_client_id

logger = logging.getLogger(__name__)


# Fixed schema fields; every other field name is an attribute
FIXED_FIELDS = ("id", "email", "mobile")
REQUIRED_FIELDS = ("email", "mobile")


# ==================== AUDIT EVENTS ====================

class ClientAuditEvent:
    """Audit event types for client operations."""
    CLIENT_CREATED = "client.created"
    CLIENT_UPDATED = "client.updated"
    CLIENT_DELETED = "client.deleted"
    CLIENT_LOOKUP = "client.lookup"
    CLIENT_LIST = "client.list"
    CLIENT_SEARCH = "client.search"


PII_FIELDS = ('email', 'mobile', 'phone', 'query')


def log_client_event(
    event_type: str,
    client_id: Optional[str],
    details: Dict[str, Any],
    success: bool = True
):
    """
    Log client operation for audit trail.

    Never logs email, mobile or search query values; only the client id and
    operation metadata.
    """
    safe_details = {k: v for k, v in details.items() if k not in PII_FIELDS}

    log_entry = {
        "event": event_type,
        "client_id": client_id,
        "details": safe_details,
        "success": success,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }

    if success:
        logger.info(f"Client event: {event_type} for client {client_id}", extra=log_entry)
    else:
        logger.warning(f"Client event FAILED: {event_type} for client {client_id}", extra=log_entry)


# ==================== DATA MODELS ====================

@dataclass
class ClientRecord:
    """A client with its attributes reconciled from the attribute store."""
    id: str
    email: str
    mobile: str  # ciphertext
    attributes: List[ClientAttribute] = field(default_factory=list)

    def attribute_dict(self) -> Dict[str, Any]:
        return {a.name: a.value for a in self.attributes}


@dataclass
class ClientChanges:
    """Partial update. None means the field was not supplied."""
    email: Optional[str] = None
    mobile: Optional[str] = None
    attributes: Optional[List[ClientAttribute]] = None


def check_pagination(skip: int, limit: Optional[int]):
    invalid = []
    if skip is None or skip < 0:
        invalid.append("skip")
    if limit is not None and limit < 0:
        invalid.append("limit")
    if invalid:
        raise ValidationError(invalid)


# ==================== CLIENT STORE ====================

class ClientStore:
    """
    Repository for client records.

    Provides:
    - create / modify / delete
    - get by id and paginated listing
    - find(), the clause-based query used by search
    """

    def __init__(self, session: AsyncSession, attributes: Optional[AttributeStore] = None):
        self.session = session
        self.attributes = attributes or AttributeStore(session)

    async def _get_row(self, client_id: str) -> Optional[ClientDB]:
        result = await self.session.execute(
            select(ClientDB).where(ClientDB.id == client_id).order_by(ClientDB.pk).limit(1)
        )
        return result.scalar_one_or_none()

    async def _reconcile(self, row: ClientDB) -> ClientRecord:
        """Merge the client's current attribute set into its in-memory view"""
        attributes = await self.attributes.list_by_owner(row.id)
        return ClientRecord(id=row.id, email=row.email, mobile=row.mobile, attributes=attributes)

    async def create(
        self,
        email: str,
        mobile: str,
        attributes: Iterable[ClientAttribute] = ()
    ) -> ClientRecord:
        """
        Add a client.

        Args:
            email: Client email
            mobile: Mobile number, already encrypted
            attributes: Arbitrary fields; entries with an empty name or value are skipped

        Raises:
            ValidationError: If a required field is missing or rejected by the database
        """
        missing = [name for name, value in (("email", email), ("mobile", mobile)) if not value]
        if missing:
            raise ValidationError(missing, ValidationError.MISSING)

        client_id = generate_client_id(email, mobile)

        for attribute in attributes:
            if attribute.name and attribute.value:
                await self.attributes.upsert(client_id, attribute.name, attribute.value)

        row = ClientDB(id=client_id, email=email, mobile=mobile)
        record = await self._reconcile(row)

        self.session.add(row)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.error(f"Client insert rejected: {e.orig}")
            raise ValidationError(["id", *REQUIRED_FIELDS], ValidationError.MISSING) from e

        log_client_event(
            ClientAuditEvent.CLIENT_CREATED,
            client_id,
            {"attribute_count": len(record.attributes)}
        )
        return record

    async def modify(self, client_id: str, changes: ClientChanges) -> Optional[ClientRecord]:
        """
        Apply a partial update.

        Returns:
            The updated record, or None if the client does not exist
        """
        row = await self._get_row(client_id)
        if row is None:
            return None

        updated_fields = []
        if changes.email is not None:
            row.email = changes.email
            updated_fields.append("email")
        if changes.mobile is not None:
            row.mobile = changes.mobile
            updated_fields.append("mobile")

        if changes.attributes is not None:
            for attribute in changes.attributes:
                await self.attributes.upsert(client_id, attribute.name, attribute.value)
            updated_fields.extend(a.name for a in changes.attributes)

        record = await self._reconcile(row)
        await self.session.commit()

        log_client_event(
            ClientAuditEvent.CLIENT_UPDATED,
            client_id,
            {"fields_updated": len(updated_fields)}
        )
        return record

    async def delete(self, client_id: str) -> bool:
        """
        Delete a client and its attributes.

        Returns:
            False if the client does not exist
        """
        row = await self._get_row(client_id)
        if row is None:
            return False

        removed = await self.attributes.delete_all_by_owner(client_id)
        await self.session.delete(row)
        await self.session.commit()

        log_client_event(
            ClientAuditEvent.CLIENT_DELETED,
            client_id,
            {"attributes_removed": removed}
        )
        return True

    async def get(self, client_id: str) -> Optional[ClientRecord]:
        """Get a client by id, or None"""
        row = await self._get_row(client_id)
        if row is None:
            return None

        log_client_event(ClientAuditEvent.CLIENT_LOOKUP, client_id, {})
        return await self._reconcile(row)

    async def list(self, skip: int = 0, limit: Optional[int] = None) -> List[ClientRecord]:
        """Clients in creation order, paginated"""
        records = await self.find(None, skip=skip, limit=limit)
        log_client_event(ClientAuditEvent.CLIENT_LIST, None, {"skip": skip, "limit": limit, "count": len(records)})
        return records

    async def find(self, where, skip: int = 0, limit: Optional[int] = None) -> List[ClientRecord]:
        """
        Clients matching a SQLAlchemy clause (all clients when None).

        Raises:
            ValidationError: If skip or limit is negative
        """
        check_pagination(skip, limit)
        if limit == 0:
            return []

        query = select(ClientDB).order_by(ClientDB.pk).offset(skip)
        if where is not None:
            query = query.where(where)
        if limit is not None:
            query = query.limit(limit)

        result = await self.session.execute(query)
        return [await self._reconcile(row) for row in result.scalars().all()]
