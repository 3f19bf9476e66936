# -*- coding: utf-8 -*-
from atlas.models import make_record
from atlas.record_store import RecordStore, group_by_year, sort_records
from atlas.view_state import DatasetView


def _names(records):
    return [r.name for r in records]


def test_sort_partitions_upcoming_year_only_then_dates(store):
    assert _names(store.records()) == ["Alpha", "Bravo", "Charlie", "Delta"]


def test_sort_keeps_upcoming_in_insertion_order_and_sinks_unparseable():
    recs = [
        make_record("Old", release_date="2019-01-01"),
        make_record("Next"),
        make_record("Broken", release_date="not a date"),
        make_record("Later"),
        make_record("Y2018", release_date="2018"),
        make_record("Y2022", release_date="2022"),
        make_record("Broken2", release_date="??"),
    ]
    assert _names(sort_records(recs)) == ["Next", "Later", "Y2022", "Y2018", "Old", "Broken", "Broken2"]


def test_year_groups_concatenate_in_display_order(store):
    groups = store.year_groups()
    assert [g.name for g in groups] == ["2021", "2020"]
    g2021 = groups[0]
    assert g2021.is_year_group
    assert g2021.release_date is None
    assert g2021.derived_id == "id-2021"
    assert [i.identifier for i in g2021.items("blocks")] == ["ender_block", "stone"]
    assert g2021.count("items") == 1


def test_year_groups_skip_records_without_year():
    groups = group_by_year([make_record("U"), make_record("Bad", release_date="x")])
    assert groups == []


def test_year_zero_is_treated_as_unparseable():
    store = RecordStore([{"name": "Zero", "release_date": "0000"}, {"name": "Later", "release_date": "2021-01-01"}])
    assert _names(store.records()) == ["Zero", "Later"]
    assert _names(store.year_groups()) == ["2021"]


def test_year_groups_are_memoized(store):
    assert store.year_groups() is store.year_groups()


def test_find_and_neighbors(store):
    assert store.find(DatasetView.VERSIONS, "Charlie").name == "Charlie"
    assert store.find(DatasetView.YEARS, "Charlie") is None
    assert store.find(DatasetView.YEARS, "id-2020").name == "2020"
    prev_rec, next_rec = store.neighbors(DatasetView.VERSIONS, "Bravo")
    assert prev_rec.name == "Alpha"
    assert next_rec.name == "Charlie"
    assert store.neighbors(DatasetView.VERSIONS, "Alpha")[0] is None
    assert store.neighbors(DatasetView.VERSIONS, "missing") == (None, None)


def test_first_record_wins_on_id_collision():
    store = RecordStore([
        {"name": "Same", "release_date": "2020-01-01", "added": {"blocks": [{"name": "old"}]}},
        {"name": "Same", "release_date": "2021-01-01", "added": {"blocks": [{"name": "new"}]}},
    ])
    assert store.get("Same").items("blocks")[0].name == "new"
    assert len(store) == 2
