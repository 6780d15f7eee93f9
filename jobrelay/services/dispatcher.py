from __future__ import annotations

import enum
import logging
import time

import httpx

from jobrelay.config import Settings
from jobrelay.errors import DispatchFailure

logger = logging.getLogger("jobrelay.dispatch")


class DispatchOutcome(str, enum.Enum):
    ACCEPTED = "accepted"
    # The webhook held the connection past our deadline. That is the normal
    # case: the automation defers the work and answers via the callback.
    HANDED_OFF = "handed_off"


class Dispatcher:
    """Fires the outbound trigger at the automation webhook.

    Any client-side timeout counts as a successful hand-off. Other
    transport errors and non-2xx responses raise ``DispatchFailure``.
    """

    def __init__(self, settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.dispatch_timeout_seconds),
            transport=transport,
        )

    def build_payload(self, *, job_id: str, target: str, credential: str | None) -> dict:
        return {
            "jobId": job_id,
            "url": target,
            "sessionCookie": credential,
            "callbackUrl": self._settings.callback_url,
            "phantomApiKey": self._settings.automation_api_key,
            "agentId": self._settings.automation_agent_id,
        }

    async def send_trigger(self, *, job_id: str, target: str, credential: str | None = None) -> DispatchOutcome:
        url = self._settings.automation_webhook_url
        if not url:
            raise DispatchFailure("automation webhook URL is not configured")

        payload = self.build_payload(job_id=job_id, target=target, credential=credential)
        start = time.perf_counter()

        try:
            response = await self._client.post(url, json=payload)
        except httpx.TimeoutException as e:
            # Connect/pool timeouts may mean the request never left; keep them visible.
            level = logging.INFO if isinstance(e, (httpx.ReadTimeout, httpx.WriteTimeout)) else logging.WARNING
            logger.log(
                level,
                "dispatch_handed_off job_id=%s timeout=%s after_ms=%.0f",
                job_id,
                type(e).__name__,
                (time.perf_counter() - start) * 1000,
            )
            return DispatchOutcome.HANDED_OFF
        except httpx.HTTPError as e:
            logger.warning("dispatch_transport_error job_id=%s error=%r", job_id, e)
            raise DispatchFailure(f"Automation webhook request failed: {str(e) or type(e).__name__}") from e

        duration_ms = (time.perf_counter() - start) * 1000
        if not response.is_success:
            logger.warning(
                "dispatch_rejected job_id=%s status=%s duration_ms=%.0f",
                job_id,
                response.status_code,
                duration_ms,
            )
            raise DispatchFailure(
                f"Automation webhook failed: {response.status_code} {response.reason_phrase}".rstrip()
            )

        logger.info("dispatch_accepted job_id=%s status=%s duration_ms=%.0f", job_id, response.status_code, duration_ms)
        return DispatchOutcome.ACCEPTED

    async def aclose(self) -> None:
        await self._client.aclose()
