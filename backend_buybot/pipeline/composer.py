"""
Notification composer: MonitoredToken + TokenChange + MarketSnapshot -> NotificationPayload.

Pure formatting; queuing happens in the processor.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal, localcontext

from backend_buybot.config.settings import LinkConfig
from backend_buybot.pipeline.models import (
    MarketSnapshot,
    MonitoredToken,
    NotificationPayload,
    TokenChange,
)

EMOJI_LINE_WIDTH = 20


def to_fixed(value: float, digits: int = 2) -> str:
    """Format with a fixed number of decimals, ties rounded away from zero on the exact binary value."""
    with localcontext() as ctx:
        ctx.prec = 100
        quantized = Decimal(value).quantize(Decimal(1).scaleb(-digits), rounding=ROUND_HALF_UP)
        return format(quantized, "f")


def emoji_repeat_count(amount: float, min_value: float) -> int:
    # a zero threshold alerts on every buy; decorate it once
    if min_value <= 0:
        return 1
    return math.floor(amount / min_value)


def utf16_len(text: str) -> int:
    """Length in UTF-16 code units, the width Telegram clients and JS strings count."""
    return len(text.encode("utf-16-le")) // 2


def wrap_chunks(text: str, width: int = EMOJI_LINE_WIDTH) -> str:
    """
    Split text into lines of at most width UTF-16 units, joined by newlines.

    Never splits a code point; a code point wider than the remaining room starts a new line.
    """
    lines: list[str] = []
    line = ""
    line_width = 0
    for char in text:
        char_width = utf16_len(char)
        if line and line_width + char_width > width:
            lines.append(line)
            line, line_width = "", 0
        line += char
        line_width += char_width
    if line:
        lines.append(line)
    return "\n".join(lines)


def build_emojis(token: MonitoredToken, change: TokenChange) -> str:
    """
    Repeat the decoration unit once per min_value and lay whole units out in
    lines of at most EMOJI_LINE_WIDTH UTF-16 units.
    """
    unit = token.min_value_emojis
    count = emoji_repeat_count(change.amount, token.min_value)
    unit_width = utf16_len(unit)
    if not unit or count <= 0:
        return ""
    if unit_width > EMOJI_LINE_WIDTH:
        return wrap_chunks(unit * count)
    per_line = EMOJI_LINE_WIDTH // unit_width
    return "\n".join(unit * min(per_line, count - i) for i in range(0, count, per_line))


def compose_caption(
    token: MonitoredToken,
    change: TokenChange,
    snapshot: MarketSnapshot,
    signer: str,
    signature: str,
    links: LinkConfig,
) -> str:
    amount = to_fixed(change.amount)
    spent_usd = to_fixed(change.amount * snapshot.token_price_usd)
    spent_sol = to_fixed(float(spent_usd) / snapshot.sol_price_usd)
    if change.is_new_holder or change.position_increase is None:
        holder_status = "New Holder"
    else:
        holder_status = f"Position +{to_fixed(change.position_increase)}%"
    emojis = build_emojis(token, change)

    return (
        f"*{token.name.upper()} Buy!*\n"
        f"{emojis}\n\n"
        f"🔀 Spent *${spent_usd} ({spent_sol} SOL)*\n"
        f"🔀 Got *{amount} {token.symbol}*\n"
        f"👤 [Buyer]({links.buyer_url}{signer}) / [Txn]({links.txn_url}{signature})\n"
        f"🪙 *{holder_status}*\n"
        f"💸 Market Cap *${snapshot.market_cap:,}*\n\n"
        f"[DexT]({token.dex_t_url}) |"
        f" [Screener]({links.screener_url}{signature}) |"
        f" [Buy]({links.swap_url}{signature})"
    )


def compose_notification(
    token: MonitoredToken,
    change: TokenChange,
    snapshot: MarketSnapshot,
    signer: str,
    signature: str,
    links: LinkConfig | None = None,
) -> NotificationPayload:
    caption = compose_caption(token, change, snapshot, signer, signature, links or LinkConfig())
    return NotificationPayload(
        destination_id=token.destination_id,
        image=token.image,
        caption=caption,
    )
