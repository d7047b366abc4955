"""Tests for InstallationLedger with injected ledger path."""

import json
import tempfile
from pathlib import Path

from mcp_registry import InstallationLedger
from mcp_registry import InstallationRecord


def _record(server_id: str, version: str = "1.0.0", stamp: str = "2025-01-01T00:00:00+00:00") -> InstallationRecord:
    return InstallationRecord(
        id=server_id,
        version=version,
        path=f"/servers/{server_id}",
        installed_at=stamp,
        updated_at=stamp,
    )


def test_missing_ledger_is_empty():
    """Test ledger is empty and not created until first write."""
    with tempfile.TemporaryDirectory() as tmpdir:
        ledger_path = Path(tmpdir) / "installed.json"
        ledger = InstallationLedger(ledger_path)

        assert ledger.load() == []
        assert ledger.get("anything") is None
        assert not ledger_path.exists()


def test_upsert_inserts_and_persists(tmp_path):
    ledger_path = tmp_path / "servers" / "installed.json"
    ledger = InstallationLedger(ledger_path)

    ledger.upsert(_record("alpha"))

    data = json.loads(ledger_path.read_text())
    assert data == [
        {
            "id": "alpha",
            "version": "1.0.0",
            "path": "/servers/alpha",
            "installedAt": "2025-01-01T00:00:00+00:00",
            "updatedAt": "2025-01-01T00:00:00+00:00",
        }
    ]


def test_upsert_replaces_in_place(tmp_path):
    """Test replacing keeps position and installed_at, refreshes updated_at."""
    ledger = InstallationLedger(tmp_path / "installed.json")
    ledger.upsert(_record("alpha"))
    ledger.upsert(_record("beta"))
    ledger.upsert(_record("gamma"))

    stored = ledger.upsert(_record("beta", version="2.0.0", stamp="2030-01-01T00:00:00+00:00"))

    records = ledger.load()
    assert [r.id for r in records] == ["alpha", "beta", "gamma"]
    assert records[1].version == "2.0.0"
    assert records[1].installed_at == "2025-01-01T00:00:00+00:00"
    assert records[1].updated_at != "2025-01-01T00:00:00+00:00"
    assert stored == records[1]


def test_remove_entry(tmp_path):
    ledger = InstallationLedger(tmp_path / "installed.json")
    ledger.upsert(_record("alpha"))
    ledger.upsert(_record("beta"))

    ledger.remove("alpha")

    assert [r.id for r in ledger.load()] == ["beta"]
    assert ledger.get("alpha") is None


def test_remove_absent_is_noop(tmp_path):
    ledger = InstallationLedger(tmp_path / "installed.json")
    ledger.upsert(_record("alpha"))

    ledger.remove("missing")

    assert [r.id for r in ledger.load()] == ["alpha"]


def test_get_entry(tmp_path):
    ledger = InstallationLedger(tmp_path / "installed.json")
    ledger.upsert(_record("alpha", version="3.1.4"))

    record = ledger.get("alpha")
    assert record is not None
    assert record.version == "3.1.4"
    assert record.path == "/servers/alpha"


def test_malformed_ledger_reads_as_empty(tmp_path):
    ledger_path = tmp_path / "installed.json"
    ledger_path.write_text("{ this is not json")

    assert InstallationLedger(ledger_path).load() == []


def test_wrong_shape_reads_as_empty(tmp_path):
    ledger_path = tmp_path / "installed.json"
    ledger_path.write_text(json.dumps({"alpha": {"id": "alpha"}}))
    assert InstallationLedger(ledger_path).load() == []

    ledger_path.write_text(json.dumps([{"id": "alpha"}]))
    assert InstallationLedger(ledger_path).load() == []


def test_write_after_corruption_recovers(tmp_path):
    ledger_path = tmp_path / "installed.json"
    ledger_path.write_text("garbage")
    ledger = InstallationLedger(ledger_path)

    ledger.upsert(_record("alpha"))

    assert [r.id for r in ledger.load()] == ["alpha"]


def test_save_leaves_no_temp_files(tmp_path):
    ledger = InstallationLedger(tmp_path / "installed.json")
    ledger.upsert(_record("alpha"))
    ledger.remove("alpha")

    assert [p.name for p in tmp_path.iterdir()] == ["installed.json"]


def test_ledger_persistence():
    """Test that ledger persists across instances."""
    with tempfile.TemporaryDirectory() as tmpdir:
        ledger_path = Path(tmpdir) / "installed.json"

        InstallationLedger(ledger_path).upsert(_record("persistent"))

        ledger2 = InstallationLedger(ledger_path)
        record = ledger2.get("persistent")
        assert record is not None
        assert record.id == "persistent"


def test_record_dict_round_trip():
    record = _record("alpha")
    assert InstallationRecord.from_dict(record.to_dict()) == record
