import logging
from typing import Any

from core.types import DiagnosticIntent, DiagnosticResult
from diagnostics.moses import MosesClient
from llm.tools import DEFAULT_MERCHANT_ID

logger = logging.getLogger(__name__)


class DiagnosticTools:
    def __init__(self, client: MosesClient):
        self.client = client

    async def check_moses_logs(
        self,
        queryType: str | None = None,
        merchantId: str | None = None,
        **extra: Any,
    ) -> DiagnosticResult:
        """Only queryType and merchantId are read; anything else the engine sends is ignored."""
        if extra:
            logger.debug("Ignoring unexpected check_moses_logs arguments: %s", sorted(extra))
        intent = DiagnosticIntent.parse(queryType)
        merchant_id = merchantId or DEFAULT_MERCHANT_ID
        return await self.client.query(merchant_id, intent)
