"""Credential handling for requests to the version registry.

Credentials are only attached to requests whose URL starts with one of
the configured registry addresses. Requests to any other host (for
example, a redirect target) are sent without them.
"""

from __future__ import annotations

from collections.abc import Generator, Iterable

import httpx
from loguru import logger

GHA_OIDC_HEADER = "X-GHA-OIDC-JWT"


class SherlockAuth(httpx.Auth):
    """Adds the IAP bearer token and, if present, the CI OIDC token.

    Args:
        trusted_addresses: Base URLs of registry instances allowed to receive credentials
        iap_token: Bearer token sent in the Authorization header
        gha_oidc_token: Optional CI identity token sent in the X-GHA-OIDC-JWT header
    """

    def __init__(
        self,
        trusted_addresses: Iterable[str],
        iap_token: str,
        gha_oidc_token: str | None = None,
    ) -> None:
        self._trusted = [a.rstrip("/") for a in trusted_addresses if a]
        self._iap_token = iap_token
        self._gha_oidc_token = gha_oidc_token

    def is_trusted(self, url: httpx.URL) -> bool:
        text = str(url)
        return any(text == a or text.startswith(a + "/") for a in self._trusted)

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        if not self.is_trusted(request.url):
            logger.debug(
                f"Not adding registry credentials to request for "
                f"{str(request.url).split('?', 1)[0]}"
            )
            yield request
            return

        if self._iap_token:
            request.headers["Authorization"] = f"Bearer {self._iap_token}"
        if self._gha_oidc_token:
            request.headers[GHA_OIDC_HEADER] = self._gha_oidc_token
        yield request
