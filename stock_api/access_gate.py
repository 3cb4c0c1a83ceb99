"""
Access Gate -- turns a bearer credential into a caller identity.

Responsibility:
    Authenticates the raw ``Authorization`` header value before any kernel
    call is made.  Two implementations share one contract:

    - ``LocalTokenGate``: HS256 JWTs signed with a shared secret (PyJWT).
    - ``DelegatedTokenGate``: forwards the bearer token to an external
      validation endpoint (httpx) and trusts its verdict.

    ``build_access_gate(settings)`` picks one from configuration.

Architecture position:
    API layer.  Runs inside the request dependency, so no unit of work is
    open while a delegated validation is in flight.

Failure modes:
    - CredentialRejectedError(reason=MISSING_CREDENTIAL): no header.
    - CredentialRejectedError(reason=MALFORMED_CREDENTIAL): not ``Bearer <token>``.
    - CredentialRejectedError(reason=INVALID_OR_EXPIRED_CREDENTIAL): bad
      signature, expired, rejected by the validator, or validator unreachable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import timedelta
from enum import Enum
from typing import Any

import httpx
import jwt

from stock_config import Settings
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.exceptions import CredentialRejectedError
from stock_kernel.logging_config import get_logger

logger = get_logger("api.access_gate")

_IDENTITY_CLAIMS = ("sub", "username", "user")


class RejectionReason(str, Enum):
    MISSING_CREDENTIAL = "missing_credential"
    MALFORMED_CREDENTIAL = "malformed_credential"
    INVALID_OR_EXPIRED_CREDENTIAL = "invalid_or_expired_credential"


def parse_bearer(credential: str | None) -> str:
    """Extract the token from ``Bearer <token>``."""
    if not credential:
        raise CredentialRejectedError(
            RejectionReason.MISSING_CREDENTIAL.value,
            "Missing Authorization header",
        )
    parts = credential.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise CredentialRejectedError(
            RejectionReason.MALFORMED_CREDENTIAL.value,
            "Invalid Authorization header",
        )
    return parts[1]


def identity_from_claims(claims: Mapping[str, Any]) -> str | None:
    for key in _IDENTITY_CLAIMS:
        value = claims.get(key)
        if isinstance(value, (str, int)) and not isinstance(value, bool) and str(value):
            return str(value)
    return None


class AccessGate(ABC):
    """
    Contract:
        ``authenticate`` returns the caller identity (possibly None when a
        valid credential names no subject) or raises CredentialRejectedError.
    """

    @abstractmethod
    def authenticate(self, credential: str | None) -> str | None: ...


class LocalTokenGate(AccessGate):
    """HS256 tokens verified against a shared secret."""

    algorithm = "HS256"

    def __init__(
        self,
        secret: str,
        expires_in_seconds: int = 3600,
        clock: Clock | None = None,
    ):
        self._secret = secret
        self._expires_in = timedelta(seconds=expires_in_seconds)
        self._clock = clock or SystemClock()

    def issue_token(self, subject: str, role: str = "admin") -> str:
        now = self._clock.now()
        payload = {
            "sub": subject,
            "role": role,
            "iat": now,
            "exp": now + self._expires_in,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def authenticate(self, credential: str | None) -> str | None:
        token = parse_bearer(credential)
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_iat": False},
            )
        except jwt.PyJWTError as exc:
            raise CredentialRejectedError(
                RejectionReason.INVALID_OR_EXPIRED_CREDENTIAL.value, "Invalid token"
            ) from exc

        # Time claims are checked against the injected clock
        exp = claims.get("exp")
        if exp is not None and self._clock.now().timestamp() >= float(exp):
            raise CredentialRejectedError(
                RejectionReason.INVALID_OR_EXPIRED_CREDENTIAL.value, "Token expired"
            )
        return identity_from_claims(claims)


class DelegatedTokenGate(AccessGate):
    """
    Bearer tokens checked by an external endpoint.

    A 2xx response accepts the token; a JSON object body supplies identity
    claims.  Any other status, a timeout or a network error rejects it.
    """

    def __init__(
        self,
        validate_url: str,
        timeout: float = 3.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self._validate_url = validate_url
        self._timeout = timeout
        self._transport = transport

    def authenticate(self, credential: str | None) -> str | None:
        token = parse_bearer(credential)
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                resp = client.get(
                    self._validate_url,
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.HTTPError as exc:
            logger.warning(
                "delegated_validation_unreachable",
                extra={"validate_url": self._validate_url, "error": str(exc)},
            )
            raise CredentialRejectedError(
                RejectionReason.INVALID_OR_EXPIRED_CREDENTIAL.value, "Invalid token"
            ) from exc

        if not resp.is_success:
            raise CredentialRejectedError(
                RejectionReason.INVALID_OR_EXPIRED_CREDENTIAL.value, "Invalid token"
            )
        try:
            body = resp.json()
        except ValueError:
            return None
        return identity_from_claims(body) if isinstance(body, dict) else None


def build_access_gate(settings: Settings, clock: Clock | None = None) -> AccessGate:
    if settings.auth_validate_url:
        return DelegatedTokenGate(
            settings.auth_validate_url, timeout=settings.auth_validate_timeout
        )
    return LocalTokenGate(
        settings.jwt_secret,
        expires_in_seconds=settings.jwt_expires_in_seconds,
        clock=clock,
    )
