"""Credential encoding and the sign-in exchange for a session token."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Mapping, Optional, Tuple, Union

import httpx

from learnboard.errors import AuthenticationError, ValidationError

logger = logging.getLogger(__name__)

Token = Union[str, Mapping[str, Any]]

INVALID_CREDENTIALS = "Invalid username or password"


def encode_credentials(username: str, password: str) -> str:
    """Return the base64 ``username:password`` value for a Basic authorization header."""
    if not username or not password:
        raise ValidationError("Username and password cannot be empty.")
    if ":" in username:
        raise ValidationError("Username cannot contain ':'.")
    raw = f"{username}:{password}".encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def decode_credentials(encoded: str) -> Tuple[str, str]:
    try:
        raw = base64.b64decode(encoded.encode("ascii"), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeError) as exc:
        raise ValidationError("Malformed credential string.") from exc
    username, sep, password = raw.partition(":")
    if not sep:
        raise ValidationError("Malformed credential string.")
    return username, password


def bearer_value(token: Token) -> str:
    """Extract the string to send after ``Bearer``; the token itself stays opaque."""
    if isinstance(token, str) and token:
        return token
    if isinstance(token, Mapping):
        for key in ("token", "access_token"):
            value = token.get(key)
            if isinstance(value, str) and value:
                return value
    raise AuthenticationError("Unsupported session token format")


class Authenticator:
    """Exchanges a username/password pair for a session token.

    The sign-in endpoint answers either with the bare token as JSON or with an
    object carrying an ``error`` field.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        self.transport = transport

    async def authenticate(self, username: str, password: str) -> Token:
        headers = {"Authorization": f"Basic {encode_credentials(username, password)}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.endpoint, headers=headers)
        except httpx.TimeoutException as exc:
            logger.warning("Sign-in timed out after %ss", self.timeout)
            raise AuthenticationError("Authentication request timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("Sign-in request failed: %s", exc)
            raise AuthenticationError(f"Authentication request failed: {exc}") from exc

        if not response.is_success:
            logger.warning("Sign-in rejected with HTTP %s", response.status_code)
            raise AuthenticationError(INVALID_CREDENTIALS)

        try:
            token_data = response.json()
        except ValueError as exc:
            raise AuthenticationError("Malformed response from authentication endpoint") from exc

        if isinstance(token_data, Mapping) and token_data.get("error"):
            logger.warning("Sign-in returned an error payload")
            raise AuthenticationError(str(token_data["error"]))
        if not token_data:
            raise AuthenticationError("Malformed response from authentication endpoint")

        logger.info("Signed in as %s", username)
        return token_data
