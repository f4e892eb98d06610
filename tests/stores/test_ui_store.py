"""Tests for UIStore."""

import pytest

from fantasy_quiz.stores import UIStore


def test_navigate_is_no_op_for_current_page():
    ui = UIStore()
    seen = []
    ui.subscribe(lambda: seen.append(ui.current_page))
    ui.navigate_to_page("landing")
    assert seen == []
    ui.navigate_to_page("quiz")
    assert seen == ["quiz"]


def test_loading_and_error_slots():
    ui = UIStore()
    ui.set_loading("story_generation", True)
    ui.set_operation_error("network", "offline")
    ui.set_error("Profile is incomplete")
    assert ui.has_any_loading()
    assert ui.has_any_error()
    assert ui.active_errors() == ["Profile is incomplete", "offline"]

    ui.clear_all_errors()
    assert not ui.has_any_error()
    assert ui.has_any_loading()


def test_unknown_slot_rejected():
    ui = UIStore()
    with pytest.raises(KeyError):
        ui.set_loading("teleport", True)
    with pytest.raises(KeyError):
        ui.set_operation_error("teleport", "x")


def test_reset():
    ui = UIStore()
    ui.set_current_page("story")
    ui.set_loading("data_sync", True)
    ui.reset_ui_state()
    assert ui.state() == {"current_page": "landing"}
    assert not ui.has_any_loading()
