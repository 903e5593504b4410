from dataclasses import dataclass
from typing import Optional
import logging
import time

import requests

from db.models import CheckStatus

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_SECONDS = 30
USER_AGENT = "UptimeMonitor/1.0"


@dataclass(frozen=True)
class CheckResult:
    """Outcome of a single probe, before it is persisted as a MonitorCheck."""

    status: CheckStatus
    status_code: Optional[int] = None
    response_time_ms: Optional[int] = None
    error_message: Optional[str] = None

    @property
    def is_down(self) -> bool:
        return self.status.is_down


def classify_status_code(status_code: int) -> tuple[CheckStatus, Optional[str]]:
    # 4xx responses are accepted by the client, 5xx are failed responses;
    # both count as DOWN
    if status_code >= 400:
        return CheckStatus.DOWN, f"HTTP {status_code}"
    return CheckStatus.UP, None


class Prober:
    def __init__(self, timeout: float = PROBE_TIMEOUT_SECONDS, user_agent: str = USER_AGENT):
        self.timeout = timeout
        self.user_agent = user_agent

    def check(self, url: str) -> CheckResult:
        """
        Issue one GET against ``url`` and classify the outcome.

        Never raises: every transport failure is mapped to a TIMEOUT or ERROR
        result so a scheduler tick always has something to record.
        """
        start = time.monotonic()
        try:
            response = requests.get(
                url,
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
            )
        except requests.Timeout:
            logger.info(f"Probe timed out for {url}")
            return CheckResult(
                status=CheckStatus.TIMEOUT,
                response_time_ms=self._elapsed_ms(start),
                error_message="Request timeout",
            )
        except requests.RequestException as e:
            logger.info(f"Probe failed for {url}: {e}")
            return CheckResult(
                status=CheckStatus.ERROR,
                response_time_ms=self._elapsed_ms(start),
                error_message=str(e) or e.__class__.__name__,
            )
        except Exception as e:
            # Invalid URLs and the like surface outside RequestException
            logger.warning(f"Unexpected probe failure for {url}: {e}")
            return CheckResult(
                status=CheckStatus.ERROR,
                response_time_ms=self._elapsed_ms(start),
                error_message=str(e) or "Unknown error",
            )

        response_time_ms = self._elapsed_ms(start)
        status, error_message = classify_status_code(response.status_code)
        return CheckResult(
            status=status,
            status_code=response.status_code,
            response_time_ms=response_time_ms,
            error_message=error_message,
        )

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int(round((time.monotonic() - start) * 1000))
