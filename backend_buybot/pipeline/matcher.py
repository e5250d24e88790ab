"""
Threshold matcher: changed mints against the monitored-token registry.

Several registry entries may share a mint (one per destination, each with its
own threshold); every entry is evaluated on its own.
"""

from __future__ import annotations

from backend_buybot.buybot_logging import get_logger
from backend_buybot.core.timeouts import call_store
from backend_buybot.database.stores import TokenRegistry
from backend_buybot.pipeline.models import MonitoredToken, TokenChange

logger = get_logger(__name__)


def passes_threshold(token: MonitoredToken, change: TokenChange) -> bool:
    return change.amount >= token.min_value


def filter_matches(
    changes: dict[str, TokenChange],
    tokens: list[MonitoredToken],
) -> list[tuple[MonitoredToken, TokenChange]]:
    """Pair registry entries with their mint's change, dropping those below min_value."""
    matches: list[tuple[MonitoredToken, TokenChange]] = []
    for token in tokens:
        change = changes.get(token.token_mint)
        if change is None:
            continue
        if not passes_threshold(token, change):
            logger.debug(
                "matcher_below_threshold",
                mint=token.token_mint,
                destination_id=token.destination_id,
                amount=change.amount,
                min_value=token.min_value,
            )
            continue
        matches.append((token, change))
    return matches


async def match_thresholds(
    changes: dict[str, TokenChange],
    registry: TokenRegistry,
    *,
    timeout_sec: float,
) -> list[tuple[MonitoredToken, TokenChange]]:
    """Look up registry entries for the changed mints and apply min_value filters."""
    if not changes:
        return []
    tokens = await call_store(
        registry.find_by_mints,
        set(changes),
        timeout=timeout_sec,
        operation="registry_find_by_mints",
    )
    return filter_matches(changes, tokens)
