import asyncio
import httpx
from typing import List, Dict, Any, Optional
from pydantic import ValidationError
from app.core.config import settings
from app.core.exceptions import UpstreamError
import logging

logger = logging.getLogger(__name__)

from app.schemas.odds import OddsEvent


def _parse_retry_after(response: httpx.Response) -> Optional[float]:
    """Seconds to wait according to the provider, if it says so."""
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    return seconds if seconds >= 0 else None


def _error_message(response: httpx.Response) -> str:
    try:
        error_data = response.json()
        message = error_data.get("message", response.text)
        if "details" in error_data:
            message += f" (Details: {error_data['details']})"
    except Exception:
        message = response.text or response.reason_phrase
    return message


class TheOddsAPIClient:
    """
    Fetches odds for one sport from The Odds API.

    Every attempt is bounded by a timeout. Rate limits (429), server errors and
    network failures are retried with exponential backoff up to `max_attempts`
    attempts in total. Any other client error fails straight away.
    """

    def __init__(
        self,
        api_key: str = settings.ODDS_API_KEY,
        base_url: str = settings.ODDS_API_BASE_URL,
        bookmakers: str = settings.ODDS_API_BOOKMAKERS,
        markets: str = settings.ODDS_API_MARKETS,
        odds_format: str = settings.ODDS_API_ODDS_FORMAT,
        timeout: float = settings.UPSTREAM_TIMEOUT_SECONDS,
        max_attempts: int = settings.UPSTREAM_MAX_ATTEMPTS,
        base_delay: float = settings.UPSTREAM_BASE_DELAY_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.bookmakers = bookmakers
        self.markets = markets
        self.odds_format = odds_format
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._transport = transport
        self._sleep = asyncio.sleep
        self.api_usage: Dict[str, Any] = {}

    def _record_usage(self, response: httpx.Response):
        used = response.headers.get("x-requests-used")
        remaining = response.headers.get("x-requests-remaining")
        if used is not None:
            self.api_usage["requests_used"] = used
        if remaining is not None:
            self.api_usage["requests_remaining"] = remaining

    async def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{endpoint}"
        params = dict(params or {})
        params["apiKey"] = self.api_key

        last_status: Optional[int] = None
        last_error: Optional[Exception] = None

        for attempt in range(self.max_attempts):
            is_last = attempt == self.max_attempts - 1
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    # httpx times each phase separately; the whole attempt gets one deadline
                    response = await asyncio.wait_for(
                        client.get(url, params=params, headers={"Accept": "application/json"}),
                        timeout=self.timeout,
                    )
            except (httpx.TransportError, asyncio.TimeoutError) as e:
                last_status, last_error = None, e
                if is_last:
                    break
                delay = self.base_delay * (2 ** attempt)
                logger.warning(
                    f"Network/timeout error on {url} (attempt {attempt + 1}/{self.max_attempts}): {e!r}. Retrying in {delay}s"
                )
                await self._sleep(delay)
                continue

            if response.is_success:
                self._record_usage(response)
                if attempt > 0:
                    logger.info(f"Retry succeeded for {url} on attempt {attempt + 1}")
                try:
                    return response.json()
                except ValueError as e:
                    raise UpstreamError(f"TheOddsAPI returned invalid JSON: {e}", response.status_code) from e

            last_status, last_error = response.status_code, None

            if response.status_code == 429:
                if is_last:
                    break
                delay = _parse_retry_after(response)
                if delay is None:
                    delay = self.base_delay * (2 ** (attempt + 1))
                logger.warning(
                    f"Rate limited on {url} (attempt {attempt + 1}/{self.max_attempts}). Retrying in {delay}s"
                )
                await self._sleep(delay)
                continue

            if response.status_code >= 500:
                if is_last:
                    break
                delay = self.base_delay * (2 ** attempt)
                logger.warning(
                    f"Server error {response.status_code} on {url} (attempt {attempt + 1}/{self.max_attempts}). Retrying in {delay}s"
                )
                await self._sleep(delay)
                continue

            # Permanent request-level failure, retrying will not help
            message = _error_message(response)
            logger.error(f"TheOddsAPI Error {response.status_code}: {message}")
            raise UpstreamError(f"TheOddsAPI Error {response.status_code}: {message}", response.status_code)

        cause = f"last status {last_status}" if last_status is not None else f"{last_error!r}"
        logger.error(f"Max retries exceeded for {url} after {self.max_attempts} attempts ({cause})")
        raise UpstreamError(
            f"TheOddsAPI request failed after {self.max_attempts} attempts ({cause})", last_status
        ) from last_error

    async def fetch_odds(self, sport_key: str) -> List[OddsEvent]:
        """
        Returns the upcoming and live events with odds for a sport.
        """
        params = {
            "oddsFormat": self.odds_format,
            "bookmakers": self.bookmakers,
            "markets": self.markets,
        }
        logger.info(f"Fetching odds from TheOddsAPI for {sport_key}")
        raw_data = await self._get(f"/sports/{sport_key}/odds", params=params)

        if not isinstance(raw_data, list):
            raise UpstreamError(f"TheOddsAPI returned unexpected payload for {sport_key}: {type(raw_data).__name__}")

        odds_events = []
        for item in raw_data:
            try:
                odds_events.append(OddsEvent.model_validate(item))
            except ValidationError as e:
                event_id = item.get("id") if isinstance(item, dict) else None
                logger.warning(f"Skipping malformed event {event_id} for {sport_key}: {e.error_count()} errors")

        logger.info(f"Fetched {len(odds_events)} events for {sport_key}")
        return odds_events
