"""
Balance diff engine: per-mint holding deltas for the transaction signer.

Pairs each post-state token balance owned by the signer with the pre-state
balance at the same account index and emits a TokenChange when they differ.

Default-merge policy: a pre-state record that is absent, or a uiAmount that is
null on either side, counts as MISSING_BALANCE_AMOUNT (0). The RPC omits
pre-state records for token accounts created in the transaction and sends a
null uiAmount for some empty accounts; both mean "held nothing".
"""

from __future__ import annotations

from backend_buybot.pipeline.models import TokenChange
from backend_buybot.solana_listener.models import TokenBalance, TransactionEvent

MISSING_BALANCE_AMOUNT = 0.0


def _ui_amount(balance: TokenBalance | None) -> float:
    if balance is None or balance.ui_token_amount.ui_amount is None:
        return MISSING_BALANCE_AMOUNT
    return float(balance.ui_token_amount.ui_amount)


def compute_change(pre_amount: float, post_amount: float) -> TokenChange | None:
    """Return the TokenChange for one balance pair, or None if unchanged."""
    if post_amount == pre_amount:
        return None
    amount = abs(post_amount - pre_amount)
    is_new_holder = pre_amount == 0
    position_increase = None if is_new_holder else amount * 100 / pre_amount
    return TokenChange(
        is_new_holder=is_new_holder,
        amount=amount,
        position_increase=position_increase,
    )


def compute_token_changes(event: TransactionEvent, signer: str) -> dict[str, TokenChange]:
    """
    Map mint -> TokenChange for balances owned by signer.

    Failed transactions yield no changes. If the signer holds several token
    accounts of one mint, the last post-state record wins.
    """
    if event.failed:
        return {}
    pre_by_index = {b.account_index: b for b in event.pre_token_balances}
    changes: dict[str, TokenChange] = {}
    for post in event.post_token_balances:
        if post.owner != signer:
            continue
        pre = pre_by_index.get(post.account_index)
        change = compute_change(_ui_amount(pre), _ui_amount(post))
        if change is not None:
            changes[post.mint] = change
    return changes
