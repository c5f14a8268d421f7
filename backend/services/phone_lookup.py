"""
Phone Lookup - Twilio Lookup Provider

Optional phone number verification. Two implementations share one
interface and are chosen at configuration time:

- TwilioPhoneLookup: asks Twilio Lookup v2 about the number
- PatternPhoneLookup: no external service; always reports unreachable so
  callers fall back to pattern matching

Usage:
    lookup = build_phone_lookup(get_settings())
    result = await lookup.lookup('+44 20 7946 0939')
    if not result.reachable:
        ...  # use the fallback pattern
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from requests.exceptions import ConnectionError as RequestsConnectionError, Timeout
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client as TwilioClient
from twilio.base.exceptions import TwilioRestException

from services.errors import ExternalServiceUnavailable

logger = logging.getLogger(__name__)

# Seconds; the SDK default is to wait forever
DEFAULT_TIMEOUT = 5.0


@dataclass
class PhoneLookupResult:
    """Answer from a phone lookup"""
    reachable: bool
    valid: bool = False
    region_code: Optional[str] = None
    normalized_number: Optional[str] = None


UNREACHABLE = PhoneLookupResult(reachable=False)


class PhoneLookup:
    """Phone verification capability."""

    name = "none"

    async def lookup(self, number: str) -> PhoneLookupResult:
        raise NotImplementedError


class PatternPhoneLookup(PhoneLookup):
    """Used when no verification service is configured."""

    name = "pattern"

    async def lookup(self, number: str) -> PhoneLookupResult:
        return UNREACHABLE


class TwilioPhoneLookup(PhoneLookup):
    """
    Twilio Lookup v2 client.

    Network failures are reported as unreachable. Any answer from Twilio,
    including an error for an unknown number, is definitive.
    """

    name = "twilio"

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        client: Optional[TwilioClient] = None,
        timeout: float = DEFAULT_TIMEOUT
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> TwilioClient:
        if self._client is None:
            self._client = TwilioClient(
                self.account_sid,
                self.auth_token,
                http_client=TwilioHttpClient(timeout=self.timeout),
            )
            logger.info("Twilio lookup client initialized")
        return self._client

    def _fetch(self, number: str) -> PhoneLookupResult:
        """Synchronous Twilio call (the SDK is synchronous)."""
        try:
            result = self.client.lookups.v2.phone_numbers(number).fetch()
        except (RequestsConnectionError, Timeout) as e:
            raise ExternalServiceUnavailable(f"Twilio lookup unreachable: {e}") from e
        except TwilioRestException as e:
            logger.info(f"Twilio lookup rejected number: {e.code} - {e.msg}")
            return PhoneLookupResult(reachable=True, valid=False)

        return PhoneLookupResult(
            reachable=True,
            valid=bool(result.valid),
            region_code=result.country_code,
            normalized_number=result.phone_number,
        )

    async def lookup(self, number: str) -> PhoneLookupResult:
        try:
            return await asyncio.to_thread(self._fetch, number)
        except ExternalServiceUnavailable as e:
            logger.warning(f"{e} - falling back to pattern validation")
            return UNREACHABLE


def build_phone_lookup(settings) -> PhoneLookup:
    """Twilio when credentials are configured, otherwise pattern-only."""
    if settings.twilio_configured:
        return TwilioPhoneLookup(
            settings.TWILIO_ACCOUNT_SID,
            settings.TWILIO_AUTH_TOKEN,
            timeout=settings.TWILIO_TIMEOUT,
        )

    logger.warning("Twilio not configured - mobile validation uses pattern matching only")
    return PatternPhoneLookup()
