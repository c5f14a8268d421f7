"""
Client Search

Resolves {field, query} criteria against both fixed client fields and
attributes. Attributes live in a side table, so attribute criteria become an
owner-id subquery that the client query filters on.

Matching is case-insensitive substring matching; query text is literal
(LIKE wildcards are escaped).
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from sqlalchemy import and_
from sqlalchemy.ext.asyncio import AsyncSession

from database.directory_models import ClientDB
from services.clients import ClientStore, ClientRecord, ClientAuditEvent, log_client_event, check_pagination
from services.errors import SearchCriteriaError

logger = logging.getLogger(__name__)

# Fixed fields that can be searched; mobile is stored encrypted and never is
SEARCHABLE_FIXED_FIELDS = {
    "id": ClientDB.id,
    "email": ClientDB.email,
}
UNSEARCHABLE_FIELDS = ("mobile",)


@dataclass(frozen=True)
class SearchCriterion:
    """One field query"""
    field: str
    query: str


def parse_criteria(criteria: Any) -> List[SearchCriterion]:
    """
    Normalise criteria into SearchCriterion objects.

    Accepts SearchCriterion instances or mappings with 'field' and 'query'.

    Raises:
        SearchCriteriaError: If criteria is not a list of well-formed entries
    """
    if not isinstance(criteria, (list, tuple)):
        raise SearchCriteriaError("criteria must be a list")

    parsed = []
    for item in criteria:
        if isinstance(item, SearchCriterion):
            parsed.append(item)
            continue
        if not isinstance(item, Mapping) or not isinstance(item.get("field"), str):
            raise SearchCriteriaError("each criterion needs a string 'field' and a 'query'")
        query = item.get("query")
        if query is None:
            query = ""
        parsed.append(SearchCriterion(item["field"], str(query)))
    return parsed


def partition_criteria(
    criteria: Sequence[SearchCriterion]
) -> Tuple[List[Tuple[str, str]], List[Tuple[str, str]]]:
    """
    Split criteria into record filters and attribute filters.

    Returns:
        (record_filters, attribute_filters) as (field, query) pairs
    """
    record_filters = []
    attribute_filters = []

    for criterion in criteria:
        if criterion.field in UNSEARCHABLE_FIELDS:
            continue
        if criterion.field in SEARCHABLE_FIXED_FIELDS:
            record_filters.append((criterion.field, criterion.query))
        else:
            attribute_filters.append((criterion.field, criterion.query))

    return record_filters, attribute_filters


class ClientSearch:
    """Search engine over clients and their attributes"""

    def __init__(self, session: AsyncSession, clients: Optional[ClientStore] = None):
        self.session = session
        self.clients = clients or ClientStore(session)

    async def search(
        self,
        criteria: Any,
        skip: int = 0,
        limit: Optional[int] = None
    ) -> List[ClientRecord]:
        """
        Find clients matching criteria.

        A client matches when any attribute criterion matches one of its
        attributes and every fixed-field criterion matches the record. With
        only fixed-field criteria, those alone decide. Empty criteria match
        nothing.

        Raises:
            SearchCriteriaError: If criteria is malformed
        """
        parsed = parse_criteria(criteria)
        check_pagination(skip, limit)
        if not parsed:
            return []

        record_filters, attribute_filters = partition_criteria(parsed)

        record_clauses = [
            SEARCHABLE_FIXED_FIELDS[name].icontains(query, autoescape=True)
            for name, query in record_filters
        ]

        # Owners stay inside the database as a subquery; no matching
        # attribute means no result, whatever the record filters say
        if attribute_filters:
            owners = self.clients.attributes.owner_ids_query(attribute_filters)
            where = and_(ClientDB.id.in_(owners), *record_clauses)
        elif record_clauses:
            where = and_(*record_clauses)
        else:
            where = None

        if where is None:
            records = []
        else:
            records = await self.clients.find(where, skip=skip, limit=limit)

        log_client_event(
            ClientAuditEvent.CLIENT_SEARCH,
            None,
            {
                "record_filters": [name for name, _ in record_filters],
                "attribute_filters": [name for name, _ in attribute_filters],
                "count": len(records),
            }
        )
        return records
