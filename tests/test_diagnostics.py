"""Tests for configuration document checks"""

from filterspector.diagnostics import (
    CHECKS,
    run_diagnostics,
    check_filters_disabled,
    check_transmit_period_delay,
)
from filterspector.profiles import CANEDGE, MASK_ONLY


def codes(warnings):
    return [w.code for w in warnings]


def test_clean_document_has_no_warnings():
    document = {
        "log": {"file": {"split_time_period": 600, "split_time_offset": 0}},
        "can_1": {"phy": {"mode": 0}, "filter": {"id": [{"state": 1}]}, "transmit": []},
    }
    assert run_diagnostics(document) == []


def test_only_disabled_filters():
    document = {"can_2": {"filter": {"id": [{"state": 0}, {"state": 0}]}}}
    warnings = check_filters_disabled(document, CANEDGE)
    assert codes(warnings) == ["filters_disabled"]
    assert warnings[0].channel == 2
    assert "CH2" in warnings[0].message


def test_empty_filter_list_counts_as_disabled():
    assert codes(check_filters_disabled({"can_1": {"filter": {"id": []}}}, CANEDGE)) == ["filters_disabled"]


def test_mask_only_filter_location():
    document = {"can_1": {"phy": {"filter": [{"state": 0}]}}}
    assert codes(check_filters_disabled(document, MASK_ONLY)) == ["filters_disabled"]
    assert check_filters_disabled(document, CANEDGE) == []


def test_transmit_period_not_above_delay():
    document = {"can_1": {"transmit": [
        {"period": 10, "delay": 20},
        {"period": 10, "delay": 10},
        {"period": 100, "delay": 5},
        {"period": 0, "delay": 5},
    ]}}
    warnings = check_transmit_period_delay(document, CANEDGE)
    assert codes(warnings) == ["transmit_period_delay"]
    assert "2 entries" in warnings[0].message


def test_transmit_needs_normal_mode():
    document = {"can_1": {"phy": {"mode": 1}, "transmit": [{"period": 100, "delay": 0}]}}
    assert codes(run_diagnostics(document)) == ["transmit_mode"]


def test_split_settings():
    document = {"log": {"file": {"split_time_period": 30, "split_time_offset": 40}}}
    assert codes(run_diagnostics(document)) == ["split_offset", "split_period"]


def test_custom_check_list():
    document = {"log": {"file": {"split_time_period": 30, "split_time_offset": 40}}}
    assert run_diagnostics(document, checks=[]) == []
    assert len(CHECKS) == 5
