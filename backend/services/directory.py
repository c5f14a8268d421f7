"""
Client Directory

Boundary operations used by the HTTP layer. Each operation validates every
supplied field before the first write, then delegates to the record store
or search engine and returns public client views.

Not-found is signalled with None (get/modify) or False (delete).
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from services.attributes import AttributeStore
from services.clients import ClientStore, ClientChanges, REQUIRED_FIELDS
from services.errors import ValidationError
from services.formatting import ClientFormatter, extract_attributes
from services.search import ClientSearch
from services.validation import ClientValidator
from utils.encryption import EncryptionService

logger = logging.getLogger(__name__)


class ClientDirectory:
    """Validated, formatted access to client records."""

    def __init__(
        self,
        session: AsyncSession,
        encryption: EncryptionService,
        validator: ClientValidator,
        formatter: Optional[ClientFormatter] = None
    ):
        self.validator = validator
        self.formatter = formatter or ClientFormatter(encryption)
        self.clients = ClientStore(session, AttributeStore(session))
        self.search_engine = ClientSearch(session, self.clients)

    async def _check_fields(self, fields: Mapping[str, Any], required: bool):
        """
        Validate fixed fields and attribute values.

        Returns:
            (email, encrypted mobile or None, attributes)

        Raises:
            ValidationError: missing fields first, then invalid ones
        """
        if required:
            missing = [name for name in REQUIRED_FIELDS if fields.get(name) is None]
            if missing:
                raise ValidationError(missing, ValidationError.MISSING)

        invalid = []
        email = fields.get("email")
        mobile = fields.get("mobile")
        lookup = None

        if email is not None and not self.validator.validate_email(email):
            invalid.append("email")

        if mobile is not None:
            valid, lookup = await self.validator.check_mobile(mobile)
            if not valid:
                invalid.append("mobile")

        if invalid:
            raise ValidationError(invalid)

        attributes = extract_attributes(fields)
        bad_attributes = self.validator.validate_attribute_values(attributes)
        if bad_attributes:
            raise ValidationError(bad_attributes)

        encrypted_mobile = self.formatter.encrypt_mobile(mobile, lookup) if mobile is not None else None
        return email, encrypted_mobile, attributes

    async def create(self, fields: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Create a client from request fields.

        Raises:
            ValidationError: If email/mobile are missing or any field is invalid
        """
        email, mobile, attributes = await self._check_fields(fields, required=True)
        record = await self.clients.create(email, mobile, attributes)
        return self.formatter.format_public(record)

    async def get(self, client_id: str) -> Optional[Dict[str, Any]]:
        record = await self.clients.get(client_id)
        return self.formatter.format_public(record) if record else None

    async def list(self, skip: int = 0, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        records = await self.clients.list(skip=skip, limit=limit)
        return [self.formatter.format_public(r) for r in records]

    async def search(self, criteria: Any, skip: int = 0, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Raises:
            SearchCriteriaError: If criteria is malformed
        """
        records = await self.search_engine.search(criteria, skip=skip, limit=limit)
        return [self.formatter.format_public(r) for r in records]

    async def modify(self, client_id: str, fields: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Apply the supplied fields to a client.

        Attribute fields with empty values remove the attribute.

        Returns:
            Updated public view, or None if the client does not exist
        """
        email, mobile, attributes = await self._check_fields(fields, required=False)
        changes = ClientChanges(email=email, mobile=mobile, attributes=attributes)

        record = await self.clients.modify(client_id, changes)
        return self.formatter.format_public(record) if record else None

    async def delete(self, client_id: str) -> bool:
        return await self.clients.delete(client_id)
