"""
Tests for the balance diff engine (compute_token_changes / compute_change).
"""

from __future__ import annotations

import pytest

from backend_buybot.pipeline.diff import MISSING_BALANCE_AMOUNT, compute_change, compute_token_changes
from backend_buybot.solana_listener.parser import parse_event
from conftest import BONK_MINT, JUP_MINT, OTHER_WALLET, SIGNER, balance, make_event


def _changes(**kwargs):
    event = parse_event(make_event(**kwargs))
    return compute_token_changes(event, SIGNER)


def test_new_holder_when_pre_record_missing():
    changes = _changes(post=[balance(2, SIGNER, JUP_MINT, 100.0)])
    change = changes[JUP_MINT]
    assert change.is_new_holder is True
    assert change.amount == 100.0
    assert change.position_increase is None


def test_position_increase_for_existing_holder():
    changes = _changes(
        pre=[balance(2, SIGNER, JUP_MINT, 50.0)],
        post=[balance(2, SIGNER, JUP_MINT, 75.0)],
    )
    change = changes[JUP_MINT]
    assert change.is_new_holder is False
    assert change.amount == 25.0
    assert change.position_increase == pytest.approx(50.0)


def test_decrease_uses_absolute_delta():
    changes = _changes(
        pre=[balance(2, SIGNER, JUP_MINT, 80.0)],
        post=[balance(2, SIGNER, JUP_MINT, 30.0)],
    )
    assert changes[JUP_MINT].amount == 50.0
    assert changes[JUP_MINT].position_increase == pytest.approx(62.5)


def test_unchanged_balance_is_skipped():
    changes = _changes(
        pre=[balance(2, SIGNER, JUP_MINT, 10.0)],
        post=[balance(2, SIGNER, JUP_MINT, 10.0)],
    )
    assert changes == {}


def test_balances_of_other_owners_are_ignored():
    changes = _changes(
        pre=[balance(3, OTHER_WALLET, JUP_MINT, 500.0)],
        post=[balance(3, OTHER_WALLET, JUP_MINT, 100.0), balance(2, SIGNER, BONK_MINT, 7.0)],
    )
    assert set(changes) == {BONK_MINT}


def test_pre_record_matched_by_account_index_not_position():
    changes = _changes(
        pre=[balance(4, SIGNER, BONK_MINT, 1.0), balance(2, SIGNER, JUP_MINT, 20.0)],
        post=[balance(2, SIGNER, JUP_MINT, 30.0), balance(4, SIGNER, BONK_MINT, 1.0)],
    )
    assert set(changes) == {JUP_MINT}
    assert changes[JUP_MINT].amount == 10.0
    assert changes[JUP_MINT].position_increase == pytest.approx(50.0)


def test_null_ui_amount_counts_as_zero():
    changes = _changes(
        pre=[balance(2, SIGNER, JUP_MINT, None)],
        post=[balance(2, SIGNER, JUP_MINT, 12.5)],
    )
    assert MISSING_BALANCE_AMOUNT == 0.0
    assert changes[JUP_MINT].is_new_holder is True
    assert changes[JUP_MINT].amount == 12.5


def test_failed_transaction_yields_no_changes():
    changes = _changes(
        post=[balance(2, SIGNER, JUP_MINT, 100.0)],
        err={"InstructionError": [0, "Custom"]},
    )
    assert changes == {}


def test_compute_change_pure():
    assert compute_change(0.0, 0.0) is None
    change = compute_change(0.0, 3.0)
    assert change.is_new_holder and change.position_increase is None
    change = compute_change(4.0, 5.0)
    assert not change.is_new_holder
    assert change.position_increase == pytest.approx(25.0)
