# -*- coding: utf-8 -*-
from datetime import datetime

import pytest

from atlas.dates import format_date_for_display, format_long_date, is_year_only, parse_release_date, release_year
from atlas.errors import LoadError, RecordFormatError
from atlas.ids import derived_id, sanitize_id
from atlas.models import CONTENT_TYPES, make_record, parse_content_item, parse_update_record


def test_sanitize_id_replaces_non_alnum_and_guards_digit():
    assert sanitize_id("Tricky Trials") == "Tricky-Trials"
    assert sanitize_id("1.21") == "id-1-21"
    assert sanitize_id("2021") == "id-2021"


def test_derived_id_prefers_name_then_version():
    assert derived_id({"name": "Caves & Cliffs", "release_version": {"java": "1.17"}}) == "Caves---Cliffs"
    assert derived_id({"name": None, "release_version": {"java": "1.17"}}) == "id-1-17"
    rec = make_record(None, release_version={"java": "1.20.5"})
    assert rec.derived_id == "id-1-20-5"


def test_derived_id_placeholder():
    assert derived_id({}).startswith("year-")


def test_parse_release_date_shapes():
    assert parse_release_date(None) is None
    assert parse_release_date("2021") == datetime(2021, 12, 31)
    assert parse_release_date("2021-06-08") == datetime(2021, 6, 8)
    assert parse_release_date("2021-06-08T10:30:00Z") == datetime(2021, 6, 8, 10, 30)
    assert parse_release_date("2021-06-08T12:30:00+02:00") == datetime(2021, 6, 8, 10, 30)
    assert parse_release_date("soon") is None


def test_year_helpers():
    assert is_year_only("2021")
    assert not is_year_only("2021-01-01")
    assert not is_year_only(None)
    assert release_year("2019-03-02") == 2019
    assert release_year("garbage") is None


def test_display_formats():
    assert format_date_for_display(None) == "upcoming"
    assert format_date_for_display("2021") == "2021"
    assert format_long_date("2021-06-08") == "June 8, 2021"
    assert format_long_date("sometime") == "sometime"
    assert format_long_date(None) == "Unknown"


def test_parse_update_record_normalizes_added():
    rec = parse_update_record({"name": "X", "release_version": "1.5", "added": {"blocks": [{"name": "Dirt"}]}})
    assert rec.version_label == "1.5"
    assert set(rec.added) == set(CONTENT_TYPES)
    assert rec.count("blocks") == 1
    assert rec.items("blocks")[0].identifier == "Dirt"
    assert rec.count("mobs") == 0


def test_parse_update_record_rejects_bad_shapes():
    with pytest.raises(RecordFormatError):
        parse_update_record(["not", "a", "dict"])
    with pytest.raises(LoadError):
        parse_update_record({"added": {}})
    with pytest.raises(RecordFormatError):
        parse_update_record({"name": "X", "added": []})


def test_parse_content_item_drops_unusable_entries():
    assert parse_content_item("stone") is None
    assert parse_content_item({"wiki": "https://example"}) is None
    item = parse_content_item({"identifier": "stone", "types": "hidden", "tags": ["Rare"]})
    assert item.name == "stone"
    assert item.types == ("hidden",)
    assert item.tag_set() == frozenset({"hidden", "rare"})


def test_with_added_leaves_original_untouched():
    rec = parse_update_record({"name": "X", "added": {"blocks": [{"name": "A"}, {"name": "B"}]}})
    smaller = rec.with_added({"blocks": rec.items("blocks")[:1]})
    assert smaller.count("blocks") == 1
    assert rec.count("blocks") == 2
    assert smaller.derived_id == rec.derived_id
