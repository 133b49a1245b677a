"""Session manager for the remote profile API.

Signs in via POST {api}/user/signin with the account email and the MD5
digest of the password; the cleartext password never leaves the process.
The returned bearer token is cached in memory for the life of the process.
No retries: an authentication failure ends the run.

SECURITY: Never logs passwords, digests, or tokens.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field

import httpx

from profilegate.errors import AuthError
from profilegate.integration.responses import json_or_text
from profilegate.models.profile import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credentials:
    email: str
    password: str = field(repr=False)

    @property
    def password_digest(self) -> str:
        return hashlib.md5(self.password.encode("utf-8")).hexdigest()


class SessionManager:
    """HTTP client for sign-in with an in-memory session cache.

    Parameters
    ----------
    api_base_url:
        Base URL for the remote API (e.g. "https://api.multilogin.com").
    timeout:
        Request timeout in seconds.
    """

    def __init__(self, api_base_url: str, timeout: float = 30.0) -> None:
        self._api_base_url = api_base_url.rstrip("/")
        self._timeout = timeout
        self._session: Session | None = None

    @property
    def current_session(self) -> Session | None:
        return self._session

    async def sign_in(self, credentials: Credentials) -> Session:
        """Authenticate and cache the resulting session.

        Raises
        ------
        AuthError
            If the API answers with a non-200 status, omits the token, or
            cannot be reached.
        """
        url = f"{self._api_base_url}/user/signin"
        payload = {"email": credentials.email, "password": credentials.password_digest}

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    url,
                    json=payload,
                    headers={"Accept": "application/json"},
                    timeout=self._timeout,
                )
        except httpx.HTTPError as exc:
            raise AuthError(f"Sign-in request failed: {exc}", url=url) from exc

        body = json_or_text(response)
        token = None
        if isinstance(body, dict) and isinstance(body.get("data"), dict):
            token = body["data"].get("token")

        if response.status_code != 200 or not token:
            logger.error("Sign-in rejected with status %d", response.status_code)
            raise AuthError(
                f"Sign-in rejected (HTTP {response.status_code})",
                status_code=response.status_code,
                body=body,
            )

        self._session = Session(bearer_token=token)
        logger.info("Signed in as %s", credentials.email)
        return self._session

    async def ensure_session(self, credentials: Credentials) -> Session:
        """Return the cached session, signing in only if there is none."""
        if self._session is not None:
            return self._session
        return await self.sign_in(credentials)
