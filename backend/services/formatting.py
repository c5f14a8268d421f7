"""
Client formatting: conversion between stored records and the public
(caller-facing) shape.
"""

import re
from typing import Any, Dict, List, Mapping, Optional

from services.attributes import ClientAttribute
from services.clients import ClientRecord, FIXED_FIELDS
from services.phone_lookup import PhoneLookupResult
from utils.encryption import EncryptionService

MASK_CHAR = "*"
VISIBLE_DIGITS = 4


def mask_mobile(number: str, visible: int = VISIBLE_DIGITS) -> str:
    """
    Mask a mobile number for display.

    The last `visible` characters stay; every digit before them becomes
    '*'. Separators are kept, so the length is unchanged.
    """
    if not number:
        return ""
    if len(number) <= visible:
        return number

    hidden, shown = number[:-visible], number[-visible:]
    return re.sub(r"\d", MASK_CHAR, hidden) + shown


def normalize_mobile(number: str, lookup: Optional[PhoneLookupResult] = None) -> str:
    """The lookup's E.164 number when it has one, else the input without whitespace."""
    if lookup is not None and lookup.reachable and lookup.normalized_number:
        return lookup.normalized_number
    return re.sub(r"\s", "", number)


def extract_attributes(fields: Mapping[str, Any]) -> List[ClientAttribute]:
    """Every input field except the fixed ones becomes an attribute."""
    return [ClientAttribute(name, value) for name, value in fields.items() if name not in FIXED_FIELDS]


class ClientFormatter:
    """Builds public client views; needs the encryption service to read mobiles."""

    def __init__(self, encryption: EncryptionService):
        self.encryption = encryption

    def format_public(self, record: ClientRecord) -> Dict[str, Any]:
        """
        Flatten a record into its public view.

        Attributes are added alongside id/email/mobile but never replace them.
        The mobile number is decrypted and masked.

        Raises:
            DecryptionError: If the stored mobile cannot be decrypted
        """
        mobile = self.encryption.decrypt(record.mobile)
        view: Dict[str, Any] = {
            "id": record.id,
            "email": record.email,
            "mobile": mask_mobile(mobile),
        }

        for attribute in record.attributes:
            if attribute.name not in view:
                view[attribute.name] = attribute.value

        return view

    def encrypt_mobile(self, number: str, lookup: Optional[PhoneLookupResult] = None) -> str:
        return self.encryption.encrypt(normalize_mobile(number, lookup))
