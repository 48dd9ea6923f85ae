import json
import sqlite3
from datetime import datetime, timezone

import pytest

from pqledger import Chain
from pqledger.attestation import SimulatedAttestor
from pqledger.backends import InMemoryBackend, JSONFileBackend, SQLiteBackend
from pqledger.core.exceptions import IntegrityError, SerializationError, StorageError


@pytest.fixture(params=["memory", "json", "sqlite"])
def backend(request, tmp_path):
    if request.param == "memory":
        backend = InMemoryBackend()
    elif request.param == "json":
        backend = JSONFileBackend(tmp_path / "chain.json")
    else:
        backend = SQLiteBackend(tmp_path / "chain.db")
    yield backend
    backend.close()


def test_empty_backend_loads_nothing(backend):
    assert backend.exists() is False
    assert Chain.load(backend) is None


def test_save_and_load_chain(backend, populated_chain):
    populated_chain.save(backend)
    assert backend.exists() is True

    loaded = Chain.load(backend, verify=True)

    assert loaded.name == populated_chain.name
    assert loaded.id == populated_chain.id
    assert loaded.created_at == populated_chain.created_at
    assert loaded.keypair == populated_chain.keypair
    assert loaded.head == populated_chain.head
    assert [tx.to_dict() for tx in loaded.get_all_transactions()] == [
        tx.to_dict() for tx in populated_chain.get_all_transactions()
    ]
    assert loaded.verify_chain() is True


def test_save_replaces_previous_state(backend, chain):
    chain.add_transaction(b"one")
    chain.save(backend)
    chain.add_transaction(b"two")
    chain.save(backend)

    loaded = Chain.load(backend)
    assert [tx.data for tx in loaded.get_all_transactions()] == [b"one", b"two"]


def test_loaded_chain_keeps_growing(backend, chain):
    chain.add_transaction(b"before")
    chain.save(backend)

    loaded = Chain.load(backend)
    new_id = loaded.add_transaction(b"after")

    assert loaded.get_transaction(new_id).previous_id == chain.head
    assert loaded.verify_chain() is True


def test_attestations_survive_persistence(backend, provider, keypair):
    attestor = SimulatedAttestor()
    chain = Chain("Attested", keypair=keypair, provider=provider, attestation_hook=attestor)
    chain.add_transaction(b"evidence")
    chain.save(backend)

    tx = Chain.load(backend).get_all_transactions()[0]
    assert attestor.verify(tx.canonical_payload(), tx.attestation) is True


def test_reordered_document_fails_verification(populated_chain):
    backend = InMemoryBackend()
    document = populated_chain.to_dict()
    document["transactions"][0], document["transactions"][1] = (
        document["transactions"][1],
        document["transactions"][0],
    )
    backend.save(document)

    assert Chain.load(backend).verify_chain() is False
    with pytest.raises(IntegrityError):
        Chain.load(backend, verify=True)


def test_tampered_document_fails_verification(populated_chain):
    backend = InMemoryBackend()
    document = populated_chain.to_dict()
    document["transactions"][1]["data"] = "Zm9yZ2Vk"
    backend.save(document)

    with pytest.raises(IntegrityError):
        Chain.load(backend, verify=True)


@pytest.mark.parametrize("mutate", [
    lambda d: d.pop("keypair"),
    lambda d: d.update(format_version=99),
    lambda d: d.update(transactions="nope"),
    lambda d: d.update(name=7),
    lambda d: d["keypair"].update(scheme="rsa"),
    lambda d: d["transactions"][0].update(signature="%%%"),
    lambda d: d["keypair"].update(public_key="c2hvcnQ="),
    lambda d: d["keypair"].update(secret_key="c2hvcnQ="),
])
def test_malformed_document_is_rejected(populated_chain, mutate):
    backend = InMemoryBackend()
    document = populated_chain.to_dict()
    mutate(document)
    backend.save(document)

    with pytest.raises(SerializationError):
        Chain.load(backend)


def test_wrong_length_keypair_is_rejected_with_field(populated_chain):
    backend = InMemoryBackend()
    document = populated_chain.to_dict()
    document["keypair"]["public_key"] = "c2hvcnQ="
    backend.save(document)

    with pytest.raises(SerializationError) as exc_info:
        Chain.load(backend)
    assert exc_info.value.field == "keypair"


def test_offsetless_timestamps_load_as_utc(populated_chain):
    backend = InMemoryBackend()
    document = populated_chain.to_dict()
    document["created_at"] = document["created_at"].replace("+00:00", "")
    for item in document["transactions"]:
        item["timestamp"] = item["timestamp"].replace("+00:00", "")
    backend.save(document)

    loaded = Chain.load(backend, verify=True)

    assert loaded.created_at.tzinfo is not None
    assert all(tx.timestamp.tzinfo is not None for tx in loaded.get_all_transactions())
    since = loaded.get_transactions_since(datetime(2000, 1, 1, tzinfo=timezone.utc))
    assert len(since) == len(populated_chain)


def test_memory_backend_copies_documents(chain):
    backend = InMemoryBackend()
    chain.add_transaction(b"x")
    chain.save(backend)

    backend.load()["transactions"].clear()
    assert len(backend.load()["transactions"]) == 1


def test_json_backend_writes_readable_file(tmp_path, chain):
    path = tmp_path / "nested" / "chain.json"
    chain.add_transaction(b"x")
    chain.save(JSONFileBackend(path))

    document = json.loads(path.read_text())
    assert document["name"] == "L"
    assert len(document["transactions"]) == 1
    assert [p.name for p in path.parent.iterdir()] == ["chain.json"]


def test_json_backend_rejects_invalid_json(tmp_path):
    path = tmp_path / "chain.json"
    path.write_text("{not json")
    with pytest.raises(SerializationError):
        JSONFileBackend(path).load()


def test_json_backend_rejects_non_object(tmp_path):
    path = tmp_path / "chain.json"
    path.write_text("[]")
    with pytest.raises(SerializationError):
        JSONFileBackend(path).load()


def test_json_backend_wraps_unserializable_document(tmp_path):
    with pytest.raises(StorageError):
        JSONFileBackend(tmp_path / "chain.json").save({"bad": object()})


def test_sqlite_backend_detects_gaps(tmp_path, populated_chain):
    db_path = tmp_path / "chain.db"
    backend = SQLiteBackend(db_path)
    populated_chain.save(backend)
    backend.close()

    conn = sqlite3.connect(db_path)
    conn.execute("DELETE FROM transactions WHERE position = 1")
    conn.commit()
    conn.close()

    backend = SQLiteBackend(db_path)
    with pytest.raises(SerializationError):
        backend.load()
    backend.close()


def test_sqlite_backend_rejects_malformed_document(tmp_path):
    backend = SQLiteBackend(tmp_path / "chain.db")
    with pytest.raises(StorageError):
        backend.save({"name": "missing everything else"})
    assert backend.exists() is False
    backend.close()
