# Overview: Client for the external identity provider (Google OAuth2 userinfo).

from __future__ import annotations

from dataclasses import dataclass

import httpx


class InvalidToken(Exception):
    """The provider did not accept the token, or returned no email."""


class IdentityProviderError(Exception):
    """The provider could not be reached or answered with a server error."""


@dataclass(frozen=True)
class IdentityClaims:
    subject: str
    email: str
    name: str | None = None
    picture: str | None = None


class GoogleIdentityVerifier:
    """
    Resolves a Google OAuth2 access token to the user's profile.

    Only the token check lives here; what a verified identity may do is
    decided by the auth service.
    """

    def __init__(
        self,
        userinfo_url: str,
        timeout: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.userinfo_url = userinfo_url
        self.timeout = timeout
        self.transport = transport

    def verify(self, token: str) -> IdentityClaims:
        if not token:
            raise InvalidToken("Token is required")

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.get(
                    self.userinfo_url,
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.HTTPError as exc:
            raise IdentityProviderError("Identity provider unreachable") from exc

        if response.status_code >= 500:
            raise IdentityProviderError(f"Identity provider returned {response.status_code}")
        if response.status_code != 200:
            raise InvalidToken("Token rejected by identity provider")

        try:
            payload = response.json()
        except ValueError as exc:
            raise IdentityProviderError("Identity provider returned invalid JSON") from exc

        email = payload.get("email")
        subject = payload.get("sub")
        if not email or not subject:
            raise InvalidToken("Token did not resolve to a verified email")

        return IdentityClaims(
            subject=str(subject),
            email=email.strip().lower(),
            name=payload.get("name"),
            picture=payload.get("picture"),
        )
