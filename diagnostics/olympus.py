import os

import httpx

from core.config import DiagnosticsConfig


class CredentialError(RuntimeError):
    """Client-credentials exchange could not produce a token."""


class OlympusAuth:
    """Client-credentials exchange against the Olympus identity service.

    No caching: every call performs a fresh exchange.
    """

    def __init__(self, config: DiagnosticsConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self.client_id = os.environ.get(config.client_id_env, "")
        self.client_secret = os.environ.get(config.client_secret_env, "")
        self._transport = transport

    @property
    def token_url(self) -> str:
        return f"{self.config.olympus_host.rstrip('/')}{self.config.token_path}"

    async def fetch_token(self) -> str:
        """Return the Authorization header value for one analytics request."""
        if not self.config.olympus_host:
            raise CredentialError("olympus_host is not configured")
        if not self.client_id or not self.client_secret:
            raise CredentialError(
                f"missing credentials ({self.config.client_id_env}/{self.config.client_secret_env})"
            )

        async with httpx.AsyncClient(timeout=self.config.timeout_s, transport=self._transport) as client:
            resp = await client.post(
                self.token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
            )
            resp.raise_for_status()
            body = resp.json()

        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            raise CredentialError("token response carried no access_token")
        return f"O-Bearer {token}"
