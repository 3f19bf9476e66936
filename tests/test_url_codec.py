# -*- coding: utf-8 -*-
from urllib.parse import parse_qs

from atlas.url_codec import UrlHistory, decode, encode, to_query_string
from atlas.view_state import DatasetView, DetailTarget, Mode, RecordRef, ViewState


def test_decode_ignores_invalid_enums():
    p = decode("?view=monthly&mode=party&search=ender")
    assert p.view is None
    assert p.mode is None
    assert p.mode_present
    assert p.search == "ender"


def test_decode_detail_type_defaults_to_version():
    p = decode("mode=detail&detailId=Bravo")
    assert p.mode == Mode.DETAIL
    assert p.detail_type == "version"
    assert p.detail_id == "Bravo"


def test_decode_accepts_mapping():
    p = decode({"view": "years", "mode": "compare", "compare1": "id-2021"})
    assert p.view == DatasetView.YEARS
    assert p.compare1 == "id-2021"
    assert p.compare2 is None


def test_encode_list_mode_omits_mode():
    assert encode(ViewState()) == {"view": "versions"}


def test_encode_compare_and_detail():
    st = ViewState(mode=Mode.COMPARE, query="#rare")
    st.compare_selection = [None, RecordRef("Charlie", DatasetView.VERSIONS)]
    assert encode(st) == {"view": "versions", "search": "#rare", "mode": "compare", "compare2": "Charlie"}

    st = ViewState(view=DatasetView.YEARS, mode=Mode.DETAIL, detail_target=DetailTarget("year", "id-2021"))
    st.compare_selection = [RecordRef("id-2020", DatasetView.YEARS), None]
    out = encode(st)
    assert out["detailType"] == "year"
    assert out["detailId"] == "id-2021"
    assert "compare1" not in out


def test_query_string_round_trip_through_decode():
    st = ViewState(view=DatasetView.YEARS, mode=Mode.STATS)
    qs = to_query_string(encode(st))
    assert parse_qs(qs) == {"view": ["years"], "mode": ["stats"]}
    p = decode(qs)
    assert (p.view, p.mode) == (DatasetView.YEARS, Mode.STATS)


def test_history_push_replace_back_forward():
    h = UrlHistory("view=versions")
    h.push("view=years")
    h.replace("view=years&search=x")
    assert len(h) == 2
    assert h.back() == "view=versions"
    assert h.back() is None
    h.push("view=versions&mode=stats")
    assert h.forward() is None
    assert h.entries() == ["view=versions", "view=versions&mode=stats"]
    assert h.back() == "view=versions"
    assert h.forward() == "view=versions&mode=stats"
