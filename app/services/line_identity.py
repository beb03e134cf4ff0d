"""
LINE Login ID token verification.

The LIFF front end sends the LINE ID token as a bearer credential; LINE's
verify endpoint checks signature, expiry and audience and returns the
profile claims we need.
"""

import logging
from typing import Optional

import httpx
from pydantic import BaseModel

from ..config import LINE_CHANNEL_ID, LINE_VERIFY_URL
from ..shared.errors import AuthenticationError

logger = logging.getLogger(__name__)


class LineIdentity(BaseModel):
    subject_id: str
    display_name: str = ""
    picture_url: Optional[str] = None


class LineIdentityResolver:
    """Verify a LINE ID token and return the subject plus profile fields"""

    def __init__(
        self,
        channel_id: Optional[str] = LINE_CHANNEL_ID,
        verify_url: str = LINE_VERIFY_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.channel_id = channel_id
        self.verify_url = verify_url
        self.timeout = timeout
        self.transport = transport

    async def verify(self, token: Optional[str]) -> LineIdentity:
        if not token or not token.strip():
            raise AuthenticationError("Access token must not be empty")
        if not self.channel_id:
            logger.error("LINE_CHANNEL_ID not configured")
            raise AuthenticationError("LINE login is not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.verify_url,
                    data={"id_token": token, "client_id": self.channel_id},
                )
        except httpx.HTTPError as e:
            logger.error(f"LINE token verification request failed: {e}")
            raise

        if response.status_code == 400:
            # LINE answers 400 for expired, malformed and wrong-audience tokens
            logger.info(f"LINE rejected ID token: {response.text[:200]}")
            raise AuthenticationError("Token expired or invalid")
        response.raise_for_status()

        claims = response.json()
        if claims.get("aud") != self.channel_id:
            logger.warning("LINE ID token audience mismatch")
            raise AuthenticationError("Invalid token - channel ID mismatch")

        subject_id = claims.get("sub")
        if not subject_id:
            logger.error(f"LINE ID token missing sub claim. Claims: {sorted(claims)}")
            raise AuthenticationError("Invalid token claims")

        return LineIdentity(
            subject_id=subject_id,
            display_name=claims.get("name") or "",
            picture_url=claims.get("picture"),
        )


line_identity_resolver = LineIdentityResolver()


def get_identity_resolver() -> LineIdentityResolver:
    """Dependency injection for the identity resolver"""
    return line_identity_resolver
