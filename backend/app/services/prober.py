import enum
import logging
import httpx
from typing import Dict, Optional

logger = logging.getLogger(__name__)

class ProbeOutcome(str, enum.Enum):
    REACHABLE = "reachable"
    UNREACHABLE = "unreachable"
    FAILED = "failed"

class HttpProber:
    """HEAD check used to avoid redirecting clients to a dead link."""

    def __init__(self, timeout: float = 5, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self.transport = transport

    async def probe(self, url: str, headers: Optional[Dict[str, str]] = None) -> ProbeOutcome:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.head(url, headers=headers, follow_redirects=False)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("[-] Probe failed: %s", type(e).__name__)
            return ProbeOutcome.FAILED

        if 200 <= resp.status_code < 400:
            return ProbeOutcome.REACHABLE
        logger.info("[-] Probe answered %d", resp.status_code)
        return ProbeOutcome.UNREACHABLE
