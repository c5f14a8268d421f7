"""
Client Directory API Router

Endpoints:
- GET /api/clients - List clients, or search with f:<field>=<query> parameters
- PUT /api/client - Create a client
- GET /api/client/{client_id} - Get client by ID
- PUT /api/client/{client_id} - Modify a client
- DELETE /api/client/{client_id} - Delete a client and its attributes

Request bodies are free-form JSON objects: `email` and `mobile` are the
fixed fields, every other key is stored as an attribute.

Security:
- Mobile numbers are only ever returned masked
- No email or mobile values are logged
"""

import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from database import get_db
from services.directory import ClientDirectory
from services.errors import SearchCriteriaError, ValidationError
from services.phone_lookup import build_phone_lookup
from services.validation import ClientValidator
from utils.encryption import get_encryption_service
from utils.validation_errors import raise_for_validation_error, raise_validation_error

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Clients"])

SEARCH_PREFIX = "f:"


# ==================== DEPENDENCIES ====================

@lru_cache(maxsize=1)
def get_client_validator() -> ClientValidator:
    """Validator with the phone lookup selected from settings."""
    settings = get_settings()
    return ClientValidator(build_phone_lookup(settings), allowed_region=settings.PHONE_REGION)


async def get_client_directory(db: AsyncSession = Depends(get_db)) -> ClientDirectory:
    return ClientDirectory(db, get_encryption_service(), get_client_validator())


def _parse_positive(value: Optional[str], default: int, name: str) -> int:
    if value is None:
        return default
    try:
        number = int(value)
    except ValueError:
        number = 0
    if number <= 0:
        raise_validation_error(f"{name} must be a positive integer")
    return number


def _not_found():
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Client not found"
    )


# ==================== ENDPOINTS ====================

@router.get("/clients", response_model=List[Dict[str, Any]])
async def list_clients(
    request: Request,
    directory: ClientDirectory = Depends(get_client_directory)
):
    """
    List clients a page at a time.

    **Query parameters:**
    - `page`: 1-based page number (default 1)
    - `pageSize`: clients per page (default 10, capped at 100)
    - `f:<field>=<query>`: search by a fixed field (id, email) or an
      attribute; case-insensitive substring match
    """
    settings = get_settings()
    params = request.query_params

    page = _parse_positive(params.get("page"), 1, "page")
    page_size = _parse_positive(params.get("pageSize"), settings.PAGE_SIZE_DEFAULT, "pageSize")
    page_size = min(page_size, settings.PAGE_SIZE_CAP)
    skip = (page - 1) * page_size

    criteria = [
        {"field": key[len(SEARCH_PREFIX):], "query": value}
        for key, value in params.multi_items()
        if key.startswith(SEARCH_PREFIX)
    ]

    if criteria:
        try:
            return await directory.search(criteria, skip=skip, limit=page_size)
        except SearchCriteriaError as e:
            raise_validation_error(str(e))

    return await directory.list(skip=skip, limit=page_size)


@router.put("/client", status_code=status.HTTP_201_CREATED, response_model=Dict[str, Any])
async def create_client(
    fields: Dict[str, Any] = Body(...),
    directory: ClientDirectory = Depends(get_client_directory)
):
    """
    Create a client.

    **Responses:**
    - 201: public client view (mobile masked)
    - 400: email and/or mobile missing
    - 406: a field failed validation
    """
    try:
        return await directory.create(fields)
    except ValidationError as e:
        raise_for_validation_error(e)


@router.get("/client/{client_id}", response_model=Dict[str, Any])
async def get_client(
    client_id: str,
    directory: ClientDirectory = Depends(get_client_directory)
):
    """Get a client by ID."""
    client = await directory.get(client_id)
    if client is None:
        _not_found()
    return client


@router.put("/client/{client_id}", response_model=Dict[str, Any])
async def modify_client(
    client_id: str,
    fields: Dict[str, Any] = Body(...),
    directory: ClientDirectory = Depends(get_client_directory)
):
    """
    Modify a client. Only supplied fields change; an attribute sent with an
    empty value is removed.
    """
    try:
        client = await directory.modify(client_id, fields)
    except ValidationError as e:
        raise_for_validation_error(e)

    if client is None:
        _not_found()
    return client


@router.delete("/client/{client_id}")
async def delete_client(
    client_id: str,
    directory: ClientDirectory = Depends(get_client_directory)
):
    """Delete a client and all of its attributes."""
    if not await directory.delete(client_id):
        _not_found()
    return {"success": True, "client_id": client_id}
