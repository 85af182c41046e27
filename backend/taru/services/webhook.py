import asyncio
import logging
import time
from typing import Any, Dict, Optional

import aiohttp
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class WebhookResult(BaseModel):
    """Outcome of a best-effort call; failures are data, not exceptions."""

    ok: bool
    status: Optional[int] = None
    data: Any = None
    error: Optional[str] = None
    duration_ms: int = 0


class AutomationWebhookClient:
    """Relay to the external automation tool (n8n) webhooks."""

    def __init__(self, url: Optional[str], request_timeout: int = 30):
        self.url = url
        self.timeout = request_timeout

    async def trigger(
        self, payload: Dict[str, Any], method: str = "POST"
    ) -> WebhookResult:
        """
        Call the webhook once, aborting after the configured timeout.

        Args:
            payload: JSON body for POST, query parameters for GET
            method: "POST" or "GET"

        Returns:
            WebhookResult; never raises for network or remote failures
        """
        if not self.url:
            return WebhookResult(ok=False, error="Webhook URL not configured")

        start_time = time.time()
        kwargs = {"json": payload} if method == "POST" else {"params": payload}
        try:
            async with aiohttp.ClientSession() as session:
                async with session.request(
                    method,
                    self.url,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                    **kwargs,
                ) as response:
                    duration_ms = int((time.time() - start_time) * 1000)
                    if response.status >= 400:
                        error = f"Webhook returned {response.status}"
                        logger.error(error)
                        return WebhookResult(
                            ok=False,
                            status=response.status,
                            error=error,
                            duration_ms=duration_ms,
                        )

                    data = await response.json(content_type=None)
                    logger.info(
                        f"Webhook {method} {self.url} answered {response.status} "
                        f"in {duration_ms}ms"
                    )
                    return WebhookResult(
                        ok=True,
                        status=response.status,
                        data=data,
                        duration_ms=duration_ms,
                    )

        except asyncio.TimeoutError:
            error = f"Webhook timed out after {self.timeout}s"
        except (aiohttp.ClientError, ValueError) as e:
            error = f"Webhook call failed: {str(e)}"

        logger.error(error)
        return WebhookResult(
            ok=False,
            error=error,
            duration_ms=int((time.time() - start_time) * 1000),
        )
