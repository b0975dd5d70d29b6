import asyncio
import logging
import random

import httpx

from core.config import DiagnosticsConfig
from core.types import DiagnosticIntent, DiagnosticResult
from diagnostics.fql import build_fql_query, map_response
from diagnostics.olympus import CredentialError, OlympusAuth
from diagnostics.synthetic import synthetic_result

logger = logging.getLogger(__name__)


class MosesClient:
    """Queries Foxtrot logs through the Moses analytics API.

    ``query`` never raises: mock mode, a missing host and every failure on
    the live path all resolve to the synthetic result for the intent.
    """

    def __init__(
        self,
        config: DiagnosticsConfig,
        rng: random.Random | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.rng = rng or random.Random(config.mock_seed)
        self.auth = OlympusAuth(config, transport=transport)
        self._transport = transport

    @property
    def live(self) -> bool:
        return not self.config.use_mock_data and bool(self.config.moses_host)

    @property
    def query_url(self) -> str:
        return f"{self.config.moses_host.rstrip('/')}{self.config.query_path}"

    async def query(self, merchant_id: str, intent: DiagnosticIntent) -> DiagnosticResult:
        logger.info("Querying Foxtrot for %s with intent %s", merchant_id, intent.value)
        if not self.live:
            return await self._synthetic(intent)

        try:
            return await self._query_live(merchant_id, intent)
        except CredentialError as e:
            logger.warning("Olympus token exchange failed, using mock data: %s", e)
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Moses returned %s for %s, using mock data", e.response.status_code, e.request.url
            )
        except httpx.HTTPError as e:
            logger.warning("Moses request failed (%s: %s), using mock data", type(e).__name__, e)
        except ValueError as e:
            logger.warning("Unreadable response body, using mock data: %s", e)
        except Exception:
            logger.exception("Unexpected Moses failure, using mock data")
        return synthetic_result(intent, self.rng)

    async def _synthetic(self, intent: DiagnosticIntent) -> DiagnosticResult:
        if self.config.mock_latency_ms > 0:
            await asyncio.sleep(self.config.mock_latency_ms / 1000)
        return synthetic_result(intent, self.rng)

    async def _query_live(self, merchant_id: str, intent: DiagnosticIntent) -> DiagnosticResult:
        authorization = await self.auth.fetch_token()
        headers = {
            "Authorization": authorization,
            "Content-Type": "application/json",
            "X-APP-ID": self.config.app_id,
            "X-Client-Id": self.auth.client_id,
        }
        body = build_fql_query(merchant_id, intent, self.config.lookback_minutes)

        async with httpx.AsyncClient(timeout=self.config.timeout_s, transport=self._transport) as client:
            resp = await client.post(self.query_url, headers=headers, json=body)
            resp.raise_for_status()
            payload = resp.json()

        return map_response(payload)
