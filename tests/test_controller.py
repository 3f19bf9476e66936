# -*- coding: utf-8 -*-
import json
import threading

import pytest

from atlas.persistence import STATE_KEY
from atlas.view_state import DatasetView, Mode


def _names(snap):
    return [r.name for r in snap.records]


def test_install_builds_list_snapshot(controller):
    snap = controller.snapshot()
    assert snap.loaded
    assert snap.mode == Mode.LIST
    assert _names(snap) == ["Alpha", "Bravo", "Charlie", "Delta"]
    assert snap.summary.entry_count == 4


def test_snapshot_before_install_is_empty(make_controller):
    ctl = make_controller(install=False)
    snap = ctl.snapshot()
    assert not snap.loaded
    assert snap.records == []


def test_modes_are_mutually_exclusive(controller):
    assert controller.set_mode(Mode.STATS)
    assert controller.stats.active
    assert controller.set_mode(Mode.COMPARE)
    assert not controller.stats.active
    assert controller.mode == Mode.COMPARE
    assert controller.toggle_mode(Mode.COMPARE)
    assert controller.mode == Mode.LIST
    assert controller.set_mode(Mode.LIST) is False


def test_detail_mode_needs_a_target(controller):
    assert controller.set_mode(Mode.DETAIL) is False
    assert controller.mode == Mode.LIST


def test_view_switch_leaves_time_since(controller):
    controller.set_mode(Mode.TIME_SINCE)
    assert controller.set_view(DatasetView.YEARS)
    assert controller.mode == Mode.LIST
    assert not controller.time_since.active


def test_view_switch_keeps_stats_and_resets_sort(controller):
    controller.set_mode(Mode.STATS)
    controller.stats_table("name")
    assert controller.stats.sort.column == "name"
    controller.toggle_view()
    assert controller.mode == Mode.STATS
    assert controller.view == DatasetView.YEARS
    assert (controller.stats.sort.column, controller.stats.sort.direction) == ("total", "desc")
    assert controller.set_view(DatasetView.YEARS) is False


def test_compare_selection_survives_view_round_trip(controller):
    controller.set_mode(Mode.COMPARE)
    assert controller.select_compare(0, "Bravo")
    assert controller.select_compare(1, "Delta")

    controller.set_view(DatasetView.YEARS)
    assert controller.state.compare_ids() == [None, None]
    assert controller.select_compare(0, "id-2021")
    assert controller.select_compare(1, "Bravo") is False

    controller.set_view(DatasetView.VERSIONS)
    assert controller.state.compare_ids() == ["Bravo", "Delta"]
    snap = controller.snapshot()
    assert [r.name for r in snap.compare] == ["Bravo", "Delta"]

    controller.set_view(DatasetView.YEARS)
    assert controller.state.compare_ids() == ["id-2021", None]


def test_compare_ids_in_url(controller):
    controller.set_mode(Mode.COMPARE)
    controller.select_compare(1, "Charlie")
    assert controller.current_url() == "view=versions&mode=compare&compare2=Charlie"


def test_open_and_close_detail_restores_scroll(controller):
    assert controller.open_detail("version", "Charlie", scroll_offset=120)
    snap = controller.snapshot()
    assert snap.mode == Mode.DETAIL
    assert snap.detail.name == "Charlie"
    assert (snap.detail_prev.name, snap.detail_next.name) == ("Bravo", "Delta")
    assert "detailId=Charlie" in controller.current_url()

    assert controller.step_detail(1)
    assert controller.snapshot().detail.name == "Delta"
    assert controller.step_detail(1) is False

    assert controller.close_detail() == 120
    assert controller.mode == Mode.LIST
    assert controller.close_detail() is None


def test_detail_returns_to_stats(controller):
    controller.set_mode(Mode.STATS)
    assert controller.open_detail("year", "id-2021")
    assert controller.view == DatasetView.YEARS
    assert controller.state.detail_return_mode == Mode.STATS
    assert not controller.stats.active
    controller.close_detail()
    assert controller.mode == Mode.STATS
    assert controller.stats.active


def test_open_detail_unknown_record(controller):
    assert controller.open_detail("version", "Nope") is False
    assert controller.mode == Mode.LIST


def test_view_switch_leaves_detail(controller):
    controller.open_detail("version", "Alpha")
    controller.set_view(DatasetView.YEARS)
    assert controller.mode == Mode.LIST
    assert controller.state.detail_target is None


def test_pending_ids_resolve_on_install(make_controller, raw):
    ctl = make_controller("mode=compare&compare1=Charlie&compare2=Nope", install=False)
    assert ctl.state.compare_ids() == [None, None]
    ctl.install(raw)
    assert ctl.mode == Mode.COMPARE
    assert ctl.state.compare_ids() == ["Charlie", None]


def test_reinstall_keeps_compare_selection(controller, raw):
    controller.set_mode(Mode.COMPARE)
    assert controller.select_compare(0, "Bravo")
    assert controller.select_compare(1, "Delta")
    controller.install(raw)
    assert controller.state.compare_ids() == ["Bravo", "Delta"]
    assert "compare1=Bravo" in controller.current_url()


def test_detail_from_url(make_controller):
    ctl = make_controller("mode=detail&detailId=Bravo")
    assert ctl.mode == Mode.DETAIL
    assert ctl.snapshot().detail.name == "Bravo"


def test_unresolvable_detail_falls_back_to_list(make_controller):
    ctl = make_controller("mode=detail&detailId=Ghost")
    assert ctl.mode == Mode.LIST
    assert ctl.state.detail_target is None


def test_search_filters_and_is_not_persisted(controller, kv):
    before = len(controller.history)
    assert controller.set_search("  #rare ")
    assert _names(controller.snapshot()) == ["Bravo", "Charlie", "Delta"]
    assert "search=%23rare" in controller.current_url()
    assert len(controller.history) == before
    assert "rare" not in (kv.get(STATE_KEY) or "")


def test_search_ignored_in_stats(controller):
    controller.set_mode(Mode.STATS)
    assert controller.set_search("ender") is False
    assert controller.state.query == ""
    assert controller.snapshot().search_enabled is False


def test_filters_persist_across_sessions(controller, make_controller, kv):
    controller.set_visibility("mobs", False)
    controller.set_remove_duplicates(False)
    stored = json.loads(kv.get(STATE_KEY))
    assert stored["visibility"]["mobs"] is False
    assert stored["remove_duplicates"] is False

    again = make_controller()
    assert again.state.visibility["mobs"] is False
    assert again.state.remove_duplicates is False
    assert "Delta" not in _names(again.snapshot())


def test_visibility_helpers(controller):
    with pytest.raises(ValueError):
        controller.set_visibility("villagers", False)
    assert controller.toggle_visibility("items") is False
    controller.set_all_visibility(False)
    assert controller.snapshot().records == []
    controller.set_all_visibility(True)
    assert len(controller.snapshot().records) == 4


def test_sections_collapse_without_history(controller, kv):
    urls = controller.history.entries()
    assert controller.toggle_section("Bravo", "blocks") is True
    assert controller.is_section_collapsed("Bravo", "blocks")
    assert controller.history.entries() == urls
    assert json.loads(kv.get(STATE_KEY))["collapsed_sections"] == {"Bravo:blocks": True}
    assert controller.toggle_section("Bravo", "blocks") is False


def test_subscribers_get_snapshots(controller):
    events = []
    unsubscribe = controller.subscribe(events.append)
    controller.set_mode(Mode.STATS)
    assert [e.mode for e in events] == [Mode.STATS]
    unsubscribe()
    controller.set_mode(Mode.LIST)
    assert len(events) == 1


def test_failing_listener_does_not_break_commit(controller):
    def boom(_snap):
        raise RuntimeError("render failed")

    controller.subscribe(boom)
    assert controller.set_mode(Mode.COMPARE)
    assert controller.mode == Mode.COMPARE


def test_history_back_and_forward(controller):
    controller.set_mode(Mode.STATS)
    controller.set_view(DatasetView.YEARS)
    assert controller.history.entries() == [
        "view=versions",
        "view=versions&mode=stats",
        "view=years&mode=stats",
    ]

    controller.back()
    assert (controller.view, controller.mode) == (DatasetView.VERSIONS, Mode.STATS)
    controller.back()
    assert controller.mode == Mode.LIST
    assert not controller.stats.active
    assert controller.back() is None

    controller.forward()
    assert controller.mode == Mode.STATS
    assert controller.stats.active


def test_stats_table_and_growth(controller):
    controller.set_mode(Mode.STATS)
    rows = controller.stats_table()
    assert rows[0]["name"] == "Bravo"
    rows = controller.stats_table("name")
    assert [r["name"] for r in rows][0] == "Delta"
    assert controller.growth(cumulative=False).labels == ["1.3", "1.2", "1.1", "1.0"]


def test_stats_table_waits_for_the_state_lock(controller):
    controller.set_mode(Mode.STATS)
    done = threading.Event()

    def click():
        controller.stats_table("name")
        done.set()

    with controller._lock:
        worker = threading.Thread(target=click)
        worker.start()
        assert not done.wait(0.1)
        assert controller.stats.sort.column == "total"
    worker.join(5)
    assert done.is_set()
    assert controller.stats.sort.column == "name"
