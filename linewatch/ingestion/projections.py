"""
Partner projections API client and payload normalization.

The feed is JSON:API shaped: `data` holds projection resources and
`included` holds the related new_player / stat_average / league resources
they point at. Normalization resolves those relationships inline, drops
null and internal-only attributes, and keeps standard NBA lines only.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from linewatch.config import Settings, settings as default_settings
from linewatch.tracking.models import PlayerRef, Projection, StatAverage
from linewatch.utils.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerError,
    get_projections_api_breaker,
)
from linewatch.utils.logging import get_logger

logger = get_logger(__name__)

# Attributes the partner sends for its own board that consumers never see
EXCLUDED_ATTRIBUTES = frozenset({"is_promo", "refundable", "board_time", "rank", "hr_20"})

STANDARD_ODDS_TYPE = "standard"
SEASON_LONG_MARKER = "SZN"


class FetchFailure(Exception):
    """Upstream request failed, timed out, returned a non-success status, or was unusable."""

    retryable = True


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _relationship_id(resource: Dict[str, Any], name: str) -> Optional[str]:
    data = ((resource.get("relationships") or {}).get(name) or {}).get("data")
    if isinstance(data, dict) and data.get("id") is not None:
        return str(data["id"])
    return None


def find_included_item(
    included: Iterable[Dict[str, Any]], item_type: str, item_id: Optional[str]
) -> Optional[Dict[str, Any]]:
    """Find an included resource by (type, id)."""
    if not item_id:
        return None
    for item in included:
        if item.get("type") == item_type and str(item.get("id")) == item_id:
            return item
    return None


def connect_relationships(projection: Dict[str, Any], included: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Return a copy of `projection` with its related resources under `connected`.

    A new_player whose display_name is "team" represents a team line; it always
    carries a `team` attribute (empty string when the feed has none).
    """
    new_player = find_included_item(included, "new_player", _relationship_id(projection, "new_player"))
    if new_player is not None:
        attributes = new_player.get("attributes") or {}
        if attributes.get("display_name") == "team":
            new_player = {**new_player, "attributes": {**attributes, "team": attributes.get("team") or ""}}

    connected = {
        "new_player": new_player,
        "stat_average": find_included_item(
            included, "stat_average", _relationship_id(projection, "stat_average")
        ),
        "league": find_included_item(included, "league", _relationship_id(projection, "league")),
    }
    return {**projection, "connected": connected}


def remove_null_attributes(obj: Any, excluded: frozenset[str] = EXCLUDED_ATTRIBUTES) -> Any:
    """Recursively drop None values and excluded keys from dicts and lists."""
    if obj is None:
        return {}
    if isinstance(obj, list):
        return [remove_null_attributes(item, excluded) for item in obj]
    if isinstance(obj, dict):
        return {
            key: remove_null_attributes(value, excluded)
            for key, value in obj.items()
            if value is not None and key not in excluded
        }
    return obj


def is_standard_line(projection: Dict[str, Any]) -> bool:
    """Standard odds and not a season-long (SZN) line."""
    attributes = projection.get("attributes") or {}
    if attributes.get("odds_type") != STANDARD_ODDS_TYPE:
        return False
    return SEASON_LONG_MARKER not in (attributes.get("description") or "")


def _parse_player(resource: Optional[Dict[str, Any]]) -> Optional[PlayerRef]:
    if not resource or resource.get("id") is None:
        return None
    attrs = resource.get("attributes") or {}
    return PlayerRef(
        id=str(resource["id"]),
        name=attrs.get("name"),
        display_name=attrs.get("display_name"),
        team=attrs.get("team"),
        team_name=attrs.get("team_name"),
        position=attrs.get("position"),
        image_url=attrs.get("image_url"),
        league_id=_as_int(attrs.get("league_id")),
        combo=bool(attrs.get("combo", False)),
    )


def _parse_stat_average(resource: Optional[Dict[str, Any]]) -> Optional[StatAverage]:
    if not resource or resource.get("id") is None:
        return None
    attrs = resource.get("attributes") or {}
    return StatAverage(
        id=str(resource["id"]),
        average=attrs.get("average"),
        count=attrs.get("count"),
        max_value=attrs.get("max_value"),
    )


def parse_projection(resource: Dict[str, Any]) -> Projection:
    """
    Build a Projection from a connected, null-stripped resource.

    The line score is passed through untouched.
    """
    attrs = resource.get("attributes") or {}
    connected = resource.get("connected") or {}
    player = _parse_player(connected.get("new_player"))

    league_id = player.league_id if player else None
    if league_id is None:
        league_id = _as_int(_relationship_id(resource, "league"))
    if league_id is None:
        league_id = _as_int((connected.get("league") or {}).get("id"))

    return Projection(
        id=str(resource["id"]),
        line_score=attrs.get("line_score"),
        stat_type=attrs.get("stat_type"),
        stat_display_name=attrs.get("stat_display_name"),
        updated_at=attrs.get("updated_at"),
        league_id=league_id,
        player=player,
        stat_average=_parse_stat_average(connected.get("stat_average")),
        description=attrs.get("description"),
        odds_type=attrs.get("odds_type"),
        status=attrs.get("status"),
        start_time=attrs.get("start_time"),
        game_id=str(attrs["game_id"]) if attrs.get("game_id") is not None else None,
        is_live=bool(attrs.get("is_live", False)),
    )


def normalize_projections(
    payload: Dict[str, Any],
    league_ids: Optional[frozenset[int]] = None,
) -> List[Projection]:
    """
    Turn a raw feed payload into a batch of Projections.

    Args:
        payload: Decoded JSON with `data` and optional `included`
        league_ids: Leagues to keep; None or empty keeps every league

    Returns:
        Projections with live lines first, feed order otherwise preserved

    Raises:
        FetchFailure: If the payload has no `data` list
    """
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, list):
        raise FetchFailure("Projections payload has no 'data' list")
    included = [item for item in (payload.get("included") or []) if isinstance(item, dict)]

    batch: List[Projection] = []
    skipped = 0
    for resource in data:
        if not isinstance(resource, dict) or resource.get("id") is None:
            skipped += 1
            continue
        if not is_standard_line(resource):
            continue

        cleaned = remove_null_attributes(connect_relationships(resource, included))
        projection = parse_projection(cleaned)

        if league_ids and projection.league_id not in league_ids:
            continue
        batch.append(projection)

    if skipped:
        logger.warning(f"Skipped {skipped} projection records without an id")

    # sorted() is stable, so feed order survives within each group
    return sorted(batch, key=lambda p: not p.is_live)


class ProjectionsClient:
    """
    Fetches and normalizes the partner projections board.

    Transport errors, 429 and 5xx responses are retried with exponential
    backoff; every attempt goes through the partner API circuit breaker.
    Whatever still fails surfaces as FetchFailure.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_attempts: int = 3,
        retry_wait_multiplier: float = 1.0,
    ):
        self.config = config or default_settings
        self.breaker = breaker or get_projections_api_breaker()
        self.retry_attempts = retry_attempts
        self.retry_wait_multiplier = retry_wait_multiplier
        self._transport = transport

    @property
    def params(self) -> Dict[str, Any]:
        return {
            "per_page": self.config.projections_per_page,
            "include": self.config.projections_include,
        }

    async def _get(self) -> Any:
        async with httpx.AsyncClient(
            timeout=self.config.fetch_timeout_seconds, transport=self._transport
        ) as client:
            resp = await client.get(
                self.config.projections_api_url,
                params=self.params,
                headers={"Accept": "application/json"},
            )
            resp.raise_for_status()
            return resp.json()

    async def fetch_payload(self) -> Dict[str, Any]:
        """Raw decoded payload, retried and circuit-broken."""
        logger.info(f"Fetching projections from {self.config.projections_api_url}")
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.retry_attempts),
                wait=wait_exponential(
                    multiplier=self.retry_wait_multiplier,
                    min=self.retry_wait_multiplier,
                    max=8 * self.retry_wait_multiplier,
                ),
                retry=retry_if_exception(_is_retryable),
                reraise=True,
            ):
                with attempt:
                    payload = await self.breaker.call_async(self._get)
        except CircuitBreakerError as e:
            logger.warning(f"Projections fetch rejected: {e}")
            raise FetchFailure(str(e)) from e
        except httpx.HTTPStatusError as e:
            logger.error(f"Projections API returned HTTP {e.response.status_code}")
            raise FetchFailure(f"Projections API returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch projections: {e!r}")
            raise FetchFailure(f"Projections request failed: {e!r}") from e
        except ValueError as e:
            # Body was not JSON
            logger.error(f"Projections API returned an undecodable body: {e}")
            raise FetchFailure(f"Projections API returned an undecodable body: {e}") from e

        if not isinstance(payload, dict):
            raise FetchFailure(f"Projections payload is {type(payload).__name__}, expected object")
        return payload

    async def fetch(self) -> List[Projection]:
        payload = await self.fetch_payload()
        batch = normalize_projections(payload, self.config.nba_league_ids)
        logger.info(f"Fetched {len(payload.get('data') or [])} projections, kept {len(batch)} NBA lines")
        return batch
