"""
Client Attribute Store

Arbitrary name/value pairs attached to a client, kept in their own table
and keyed by the owning client's id. Each call commits on its own; there is
no atomicity across several names.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from sqlalchemy import Select, select, delete, or_
from sqlalchemy.ext.asyncio import AsyncSession

from database.directory_models import ClientAttributeDB

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientAttribute:
    """A single caller-defined field."""
    name: str
    value: Any

    def to_dict(self) -> dict:
        return {"name": self.name, "value": self.value}


def attribute_text(value: Any) -> str:
    """Stored representation of an attribute value (JSON-style booleans)."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class AttributeStore:
    """Repository for client attribute rows"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_row(self, owner_id: str, name: str) -> Optional[ClientAttributeDB]:
        result = await self.session.execute(
            select(ClientAttributeDB).where(
                ClientAttributeDB.client_id == owner_id,
                ClientAttributeDB.name == name
            )
        )
        return result.scalar_one_or_none()

    async def list_by_owner(self, owner_id: str) -> List[ClientAttribute]:
        """All attributes of a client, one per name"""
        result = await self.session.execute(
            select(ClientAttributeDB)
            .where(ClientAttributeDB.client_id == owner_id)
            .order_by(ClientAttributeDB.pk)
        )
        return [ClientAttribute(row.name, row.value) for row in result.scalars().all()]

    async def upsert(self, owner_id: str, name: str, value: Any) -> None:
        """
        Create, overwrite or remove one attribute.

        A falsy value removes the existing row; it is a no-op when there is
        no row. Empty names are ignored.
        """
        if not name:
            return

        row = await self._get_row(owner_id, name)

        if row is not None:
            if not value:
                await self.session.delete(row)
                logger.debug(f"Removed attribute '{name}' from client {owner_id}")
            else:
                row.value = attribute_text(value)
        elif value:
            self.session.add(ClientAttributeDB(client_id=owner_id, name=name, value=attribute_text(value)))
        else:
            return

        await self.session.commit()

    async def delete_all_by_owner(self, owner_id: str) -> int:
        """Remove every attribute of a client. Safe to repeat."""
        result = await self.session.execute(
            delete(ClientAttributeDB).where(ClientAttributeDB.client_id == owner_id)
        )
        await self.session.commit()
        return result.rowcount or 0

    @staticmethod
    def owner_ids_query(filters) -> Select:
        """
        SELECT of distinct owners with at least one attribute matching any filter.

        Usable as an IN subquery, so the statement size does not depend on
        how many owners match.

        Args:
            filters: Non-empty (name, query) pairs; a row matches when its name
                equals `name` and its value contains `query`, case-insensitively
        """
        clauses = [
            (ClientAttributeDB.name == name) & ClientAttributeDB.value.icontains(query, autoescape=True)
            for name, query in filters
        ]
        return (
            select(ClientAttributeDB.client_id)
            .where(or_(*clauses))
            .distinct()
        )

    async def find_owner_ids(self, filters) -> List[str]:
        """Owner ids matching any filter (see owner_ids_query)"""
        if not filters:
            return []

        result = await self.session.execute(self.owner_ids_query(filters))
        return list(result.scalars().all())
