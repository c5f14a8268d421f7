"""
Client field validation: email syntax, mobile numbers (via the phone lookup
capability with a pattern fallback) and attribute value types.
"""

import re
import logging
from typing import Iterable, List, Optional, Tuple

from services.attributes import ClientAttribute
from services.phone_lookup import PhoneLookup, PatternPhoneLookup, PhoneLookupResult

logger = logging.getLogger(__name__)

# Whole-string patterns (used with fullmatch)
# local-part@domain, with at least one dot in the domain
EMAIL_PATTERN = re.compile(
    r'([a-zA-Z0-9_+-]+)((\.[a-zA-Z0-9_+-]+)+)?@([a-zA-Z0-9_+-]+)((\.[a-zA-Z0-9_+-]+)+)'
)

# Fallback when the lookup service is unreachable:
# +44 XX XXXX XXXX, +44 XX-XXXX-XXXX and +44XXXXXXXXXX
MOBILE_FALLBACK_PATTERN = re.compile(
    r'(\+44)((\s\d{2}\s\d{4}\s\d{4})|(\s\d{2}-\d{4}-\d{4})|(\d{10}))'
)

ATTRIBUTE_VALUE_TYPES = (str, int, float, bool)


class ClientValidator:
    """Validates client fields before any write happens."""

    def __init__(self, phone_lookup: Optional[PhoneLookup] = None, allowed_region: str = "GB"):
        self.phone_lookup = phone_lookup or PatternPhoneLookup()
        self.allowed_region = allowed_region

    def validate_email(self, value) -> bool:
        if not isinstance(value, str):
            return False
        return EMAIL_PATTERN.fullmatch(value) is not None

    async def check_mobile(self, value) -> Tuple[bool, PhoneLookupResult]:
        """
        Validate a mobile number and return the lookup answer with it.

        When the lookup is unreachable the fallback pattern decides;
        otherwise the lookup's answer is trusted over the pattern.
        """
        if not isinstance(value, str):
            return False, PhoneLookupResult(reachable=False)

        result = await self.phone_lookup.lookup(value)

        if not result.reachable:
            return MOBILE_FALLBACK_PATTERN.fullmatch(value) is not None, result

        return result.valid and result.region_code == self.allowed_region, result

    async def validate_mobile(self, value) -> bool:
        valid, _ = await self.check_mobile(value)
        return valid

    def validate_attribute_values(self, attributes: Iterable[ClientAttribute]) -> List[str]:
        """Names of attributes whose values are not scalars."""
        return [a.name for a in attributes if not isinstance(a.value, ATTRIBUTE_VALUE_TYPES)]
