import json

import pytest

from harvester.errors import RosterFormatError
from harvester.roster import load_roster, parse_roster

ROSTER = [
    {"First": "Ada", "Last": "Lovelace", "Grade": 5, "Math Period": 2,
     "Student Progress Link": "https://math.imaginelearning.com/students/progress/stu00001"},
    {"First": "Grace", "Last": "Hopper", "Grade": "6", "Math Period": "4",
     "Student Progress Link": ""},
    {"First": "Alan", "Last": "Turing", "Grade": "5", "Math Period": "1"},
]


def write_json(tmp_path, data, name="roster.json"):
    path = tmp_path / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_load_json_preserves_order_and_fields(tmp_path):
    subjects = load_roster(write_json(tmp_path, ROSTER))

    assert [s.first_name for s in subjects] == ["Ada", "Grace", "Alan"]
    ada = subjects[0]
    assert ada.last_name == "Lovelace"
    assert ada.grade == "5"
    assert ada.period == "2"
    assert ada.identifier == "stu00001"


def test_missing_or_empty_link_reads_as_empty(tmp_path):
    subjects = load_roster(write_json(tmp_path, ROSTER))

    assert subjects[1].profile_link == ""
    assert subjects[2].profile_link == ""
    assert subjects[2].identifier == ""


def test_load_csv_roster(tmp_path):
    path = tmp_path / "roster.csv"
    path.write_text(
        "First,Last,Grade,Math Period,Student Progress Link\n"
        "Ada,Lovelace,5,2,https://example.org/p/stu00001\n"
        '"Hopper, Jr.",Grace,6,4,\n',
        encoding="utf-8"
    )

    subjects = load_roster(path)

    assert len(subjects) == 2
    assert subjects[0].identifier == "stu00001"
    assert subjects[1].first_name == "Hopper, Jr."
    assert subjects[1].profile_link == ""


def test_csv_without_required_columns_fails(tmp_path):
    path = tmp_path / "roster.csv"
    path.write_text("Name,Grade\nAda,5\n", encoding="utf-8")

    with pytest.raises(RosterFormatError, match="header"):
        load_roster(path)


def test_invalid_json_fails(tmp_path):
    path = tmp_path / "roster.json"
    path.write_text("[{not json", encoding="utf-8")

    with pytest.raises(RosterFormatError, match="not valid JSON"):
        load_roster(path)


def test_json_object_instead_of_array_fails(tmp_path):
    with pytest.raises(RosterFormatError, match="array"):
        load_roster(write_json(tmp_path, {"First": "Ada"}))


def test_missing_file_fails(tmp_path):
    with pytest.raises(RosterFormatError, match="cannot read roster"):
        load_roster(tmp_path / "absent.json")


def test_no_partial_roster_on_bad_entry():
    with pytest.raises(RosterFormatError, match="entry 2"):
        parse_roster([ROSTER[0], {"First": "", "Last": "Hopper"}, ROSTER[2]])


def test_non_object_entry_fails():
    with pytest.raises(RosterFormatError, match="not an object"):
        parse_roster([ROSTER[0], "Grace Hopper"])


def test_undecodable_file_fails(tmp_path):
    path = tmp_path / "roster.json"
    path.write_bytes(b'[{"First": "Ad\xff", "Last": "Lovelace"}]')

    with pytest.raises(RosterFormatError, match="UTF-8"):
        load_roster(path)
