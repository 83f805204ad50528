import json

import pytest

from inventory_ledger.errors import MalformedSnapshot, RestoreError
from inventory_ledger.models import AuditEntry
from inventory_ledger.services.units import ScalarCount


def _populate(ledger):
    sale_id = ledger.apply_mutation("sale", {"water_500ml": 2}, customer_name="Depot")
    complaint = ledger.complaints.open_complaint("Filler 1", "Asha", "Slow fill")
    ledger.complaints.append_reply(complaint.id, "Valve cleaned")
    return sale_id, complaint


def test_export_contains_every_collection(ledger):
    sale_id, complaint = _populate(ledger)

    snapshot = json.loads(ledger.export_snapshot())

    assert set(snapshot) == {"stock", "audit_entries", "complaints", "complaint_replies"}
    (stock,) = snapshot["stock"]
    assert stock["_id"] == "current"
    assert stock["items"]["water_500ml"] == {"kind": "count", "value": 8}
    assert "_serverTimestamp" in stock["updated_at"]
    (entry,) = snapshot["audit_entries"]
    assert entry["_id"] == sale_id
    assert set(entry["timestamp"]) == {"_serverTimestamp"}
    assert snapshot["complaints"][0]["_id"] == complaint.id
    assert snapshot["complaint_replies"][0]["complaint_id"] == complaint.id


def test_export_then_import_restores_state(ledger):
    sale_id, complaint = _populate(ledger)
    exported = ledger.export_snapshot()
    before = ledger.audit.get_entry(sale_id)

    ledger.apply_mutation("sale", {"water_500ml": 5}, customer_name="Later")
    ledger.complaints.resolve(complaint.id)

    counts = ledger.import_snapshot(exported)

    assert counts == {"stock": 1, "audit_entries": 1, "complaints": 1, "complaint_replies": 1}
    assert ledger.get_stock()["water_500ml"] == ScalarCount(8)
    assert [e.id for e in ledger.list_audit_entries()] == [sale_id]
    assert ledger.audit.get_entry(sale_id).timestamp == before.timestamp
    assert ledger.complaints.get(complaint.id).status == "open"
    assert [r.text for r in ledger.complaints.replies(complaint.id)] == ["Valve cleaned"]


def test_mutations_work_after_restore(ledger):
    _populate(ledger)
    ledger.import_snapshot(ledger.export_snapshot())

    ledger.apply_mutation("sale", {"water_500ml": 1}, customer_name="Depot")

    assert ledger.get_stock()["water_500ml"] == ScalarCount(7)
    assert len(ledger.list_audit_entries("sale")) == 2


def test_restore_replaces_audit_log_wholesale(ledger):
    _populate(ledger)

    ledger.snapshots.restore({
        "audit_entries": [
            {"_id": "old-1", "kind": "usage", "items": {"label_rolls": {"value": 1}},
             "timestamp": {"_serverTimestamp": "2025-12-31T23:00:00Z"}},
        ],
    })

    assert [e.id for e in ledger.list_audit_entries()] == ["old-1"]


def test_unnamed_collections_are_untouched(ledger):
    _, complaint = _populate(ledger)

    ledger.snapshots.restore({"audit_entries": []})

    assert ledger.list_audit_entries() == []
    assert ledger.get_stock()["water_500ml"] == ScalarCount(8)
    assert ledger.complaints.get(complaint.id).machine == "Filler 1"


def test_malformed_document_leaves_everything_intact(ledger):
    sale_id, _ = _populate(ledger)

    with pytest.raises(MalformedSnapshot):
        ledger.snapshots.restore({
            "stock": [{"_id": "current", "items": {}, "version_id": 1}],
            "audit_entries": [
                {"_id": "a", "kind": "sale", "items": {}},
                {"_id": "b", "kind": "sale", "items": {}, "timestamp": {"_serverTimestamp": "31/12/2025"}},
            ],
        })

    assert ledger.get_stock()["water_500ml"] == ScalarCount(8)
    assert [e.id for e in ledger.list_audit_entries()] == [sale_id]


def test_unknown_field_is_malformed(ledger):
    with pytest.raises(MalformedSnapshot):
        ledger.snapshots.restore({"complaints": [{"_id": "c", "colour": "red"}]})


def test_unknown_collection_is_malformed(ledger):
    with pytest.raises(MalformedSnapshot):
        ledger.snapshots.restore({"invoices": []})
    assert "water_500ml" in ledger.get_stock()


def test_write_failure_rolls_back_every_collection(ledger):
    sale_id, _ = _populate(ledger)

    with pytest.raises(RestoreError) as excinfo:
        ledger.snapshots.restore({
            "stock": [{"_id": "current", "items": {}, "version_id": 1}],
            "audit_entries": [
                {"_id": "dup", "kind": "sale", "items": {}},
                {"_id": "dup", "kind": "sale", "items": {}},
            ],
        })

    assert not isinstance(excinfo.value, MalformedSnapshot)
    assert ledger.get_stock()["water_500ml"] == ScalarCount(8)
    assert [e.id for e in ledger.list_audit_entries()] == [sale_id]


def test_import_rejects_invalid_json(ledger):
    with pytest.raises(MalformedSnapshot):
        ledger.import_snapshot("not json")
    assert ledger.get_stock()["water_500ml"] == ScalarCount(10)


def test_null_timestamps_survive_round_trip(ledger):
    with ledger.store.transaction() as session:
        session.add(AuditEntry(id="legacy", kind="usage", items={"label_rolls": {"value": 1}}))
        session.flush()
        session.get(AuditEntry, "legacy").timestamp = None
    fresh = ledger.apply_mutation("usage", {"label_rolls": 1})

    exported = ledger.export_snapshot()
    assert {e["_id"]: e["timestamp"] for e in json.loads(exported)["audit_entries"]}["legacy"] is None

    ledger.import_snapshot(exported)

    assert ledger.audit.get_entry("legacy").timestamp is None
    assert [e.id for e in ledger.list_audit_entries()] == [fresh, "legacy"]


def test_restore_keeps_explicit_null_created_at(ledger):
    ledger.snapshots.restore({
        "complaints": [
            {"_id": "c1", "machine": "Filler 1", "operator": "Asha", "details": "old", "status": "open",
             "created_at": None, "resolved_at": None},
        ],
    })

    assert ledger.complaints.get("c1").created_at is None


def test_missing_fields_take_column_defaults(ledger):
    ledger.snapshots.restore({
        "complaints": [{"_id": "c1", "machine": "Filler 1", "operator": "Asha", "details": "old"}],
    })

    complaint = ledger.complaints.get("c1")
    assert complaint.status == "open"
    assert complaint.created_at is not None


@pytest.mark.parametrize("stock_document", [
    {"_id": "main", "items": {}, "version_id": 1},
    {"_id": "current", "items": {"water_500ml": "lots"}, "version_id": 1},
    {"_id": "current", "items": {"caustic_soda": {"kind": "measured", "value": 2}}, "version_id": 1},
    {"_id": "current", "items": {"caustic_soda": {"kind": "measured", "value": 2, "unit": "tonnes"}}},
    {"_id": "current", "items": {"caps": {"kind": "pallet", "value": 2}}},
    {"_id": "current", "items": ["water_500ml"]},
    {"_id": "current", "items": {}, "version_id": "7"},
])
def test_unreadable_stock_record_is_malformed(ledger, stock_document):
    sale_id, _ = _populate(ledger)

    with pytest.raises(MalformedSnapshot):
        ledger.snapshots.restore({"stock": [stock_document], "audit_entries": []})

    assert ledger.get_stock()["water_500ml"] == ScalarCount(8)
    assert [e.id for e in ledger.list_audit_entries()] == [sale_id]
    assert ledger.apply_mutation("sale", {"water_500ml": 1}, customer_name="Depot") is not None
