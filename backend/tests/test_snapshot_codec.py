from datetime import datetime

import pytest

from inventory_ledger.errors import MalformedSnapshot
from inventory_ledger.services import Document
from inventory_ledger.services import snapshot_codec


def test_datetimes_are_tagged_at_any_depth():
    when = datetime(2026, 3, 1, 8, 30, 0, 250000)
    encoded = snapshot_codec.encode({
        "audit_entries": [
            Document("e1", {"timestamp": when, "items": {"history": [when]}}),
        ],
    })

    body = encoded["audit_entries"][0]
    assert body["_id"] == "e1"
    assert body["timestamp"] == {"_serverTimestamp": "2026-03-01T08:30:00.250000Z"}
    assert body["items"]["history"] == [{"_serverTimestamp": "2026-03-01T08:30:00.250000Z"}]


def test_decode_restores_datetimes_and_identity():
    decoded = snapshot_codec.decode({
        "audit_entries": [
            {"_id": "e1", "timestamp": {"_serverTimestamp": "2026-03-01T08:30:00Z"}, "kind": "sale"},
        ],
    })

    (document,) = decoded["audit_entries"]
    assert document.id == "e1"
    assert document.fields == {"timestamp": datetime(2026, 3, 1, 8, 30), "kind": "sale"}


def test_offset_timestamps_normalize_to_utc():
    decoded = snapshot_codec.decode({
        "c": [{"_id": 1, "at": {"_serverTimestamp": "2026-03-01T10:30:00+02:00"}}],
    })
    assert decoded["c"][0].id == "1"
    assert decoded["c"][0].fields["at"] == datetime(2026, 3, 1, 8, 30)


def test_tag_text_inside_strings_is_not_a_timestamp():
    value = 'note mentions {"_serverTimestamp": "2026-03-01"}'
    decoded = snapshot_codec.decode({
        "c": [{
            "_id": "x",
            "note": value,
            "meta": {"_serverTimestamp": "2026-03-01T00:00:00Z", "source": "import"},
        }],
    })

    fields = decoded["c"][0].fields
    assert fields["note"] == value
    # More than one key: an ordinary object
    assert fields["meta"] == {"_serverTimestamp": "2026-03-01T00:00:00Z", "source": "import"}


def test_round_trip_preserves_plain_values():
    documents = {
        "stock": [Document("current", {"items": {"caps": {"kind": "carton", "cartons": 5}}, "version_id": 3})],
    }
    decoded = snapshot_codec.decode(snapshot_codec.loads(snapshot_codec.dumps(snapshot_codec.encode(documents))))
    assert decoded == documents


@pytest.mark.parametrize("tagged", [
    {"_serverTimestamp": "yesterday"},
    {"_serverTimestamp": ""},
    {"_serverTimestamp": 1700000000},
])
def test_malformed_timestamp_is_hard_failure(tagged):
    with pytest.raises(MalformedSnapshot) as excinfo:
        snapshot_codec.decode({"c": [{"_id": "ok"}, {"_id": "bad", "at": tagged}]})
    assert "c[1].at" in str(excinfo.value)


@pytest.mark.parametrize("snapshot", [
    [],
    {"c": {"_id": "x"}},
    {"c": ["not a document"]},
    {"c": [{"value": 1}]},
    {"c": [{"_id": ""}]},
    {"c": [{"_id": True}]},
])
def test_malformed_structure(snapshot):
    with pytest.raises(MalformedSnapshot):
        snapshot_codec.decode(snapshot)


def test_reserved_id_field_cannot_be_encoded():
    with pytest.raises(ValueError):
        snapshot_codec.encode({"c": [Document("x", {"_id": "y"})]})


def test_loads_rejects_invalid_json():
    with pytest.raises(MalformedSnapshot):
        snapshot_codec.loads(b"{not json")


def test_round_trip_with_timestamp_and_lookalike_string():
    documents = {
        "audit_entries": [
            Document("e1", {
                "timestamp": datetime(2026, 3, 1, 8, 30, 0, 125000),
                "note": 'copied from {"_serverTimestamp": "2026-03-01T08:30:00Z"}',
                "items": {"water_500ml": 3},
            }),
        ],
        "complaints": [Document("c1", {"details": "_serverTimestamp", "resolved_at": None})],
    }

    encoded = snapshot_codec.loads(snapshot_codec.dumps(snapshot_codec.encode(documents)))
    decoded = snapshot_codec.decode(encoded)

    assert decoded == documents
    assert isinstance(decoded["audit_entries"][0].fields["timestamp"], datetime)
    assert isinstance(decoded["audit_entries"][0].fields["note"], str)
