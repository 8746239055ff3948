import json

from jobharvest.core.locations import (
    format_state_name,
    list_states,
    load_locations,
    select_locations,
)


def _write(tmp_path, data):
    path = tmp_path / "geo.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_load_flattens_in_file_order(tmp_path):
    path = _write(
        tmp_path,
        {
            "new_york": [{"name": "New York, NY", "geoId": "105080838"}],
            "california": [
                {"name": "Los Angeles, CA", "geoId": 102448103},
                {"name": "", "geoId": "1"},
                {"name": "Fresno, CA"},
            ],
        },
    )
    locs = load_locations(path)
    assert [(l.name, l.geo_id, l.state) for l in locs] == [
        ("New York, NY", "105080838", "new_york"),
        ("Los Angeles, CA", "102448103", "california"),
        ("Fresno, CA", None, "california"),
    ]
    assert list_states(locs) == ["new_york", "california"]


def test_missing_file(tmp_path):
    assert load_locations(str(tmp_path / "absent.json")) == []


def test_select_by_state(tmp_path):
    locs = load_locations(
        _write(
            tmp_path,
            {
                "texas": [{"name": "Austin, TX", "geoId": "104472865"}],
                "washington": [{"name": "Seattle, WA", "geoId": "104116203"}],
            },
        )
    )
    assert [l.name for l in select_locations(["Texas"], catalogue=locs)] == ["Austin, TX"]
    assert select_locations(["atlantis"], catalogue=locs) == []
    assert len(select_locations(None, catalogue=locs)) == 2


def test_bundled_catalogue():
    locs = load_locations()
    assert any(l.name == "San Francisco, CA" and l.geo_id == "102277331" for l in locs)


def test_format_state_name():
    assert format_state_name("new_york") == "NEW YORK"
