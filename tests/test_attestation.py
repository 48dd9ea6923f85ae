from datetime import datetime, timezone

import pytest

from pqledger.attestation import AttestationHook, AttestationRecord, SimulatedAttestor
from pqledger.core.exceptions import SerializationError


def test_simulated_attestor_round_trip():
    attestor = SimulatedAttestor()
    record = attestor.attest(b"payload")

    assert record.device_id.startswith("SIMULATED-TPM-")
    assert len(record.attestation_data) == 64
    assert attestor.verify(b"payload", record) is True


def test_simulated_attestor_rejects_other_payload():
    attestor = SimulatedAttestor()
    record = attestor.attest(b"payload")
    assert attestor.verify(b"other payload", record) is False


def test_simulated_attestor_rejects_other_device():
    first, second = SimulatedAttestor(), SimulatedAttestor()
    assert first.device_id != second.device_id

    record = first.attest(b"payload")
    assert second.verify(b"payload", record) is False

    relabelled = record.model_copy(update={"device_id": second.device_id})
    assert second.verify(b"payload", relabelled) is False


def test_simulated_attestor_is_a_hook():
    assert isinstance(SimulatedAttestor(), AttestationHook)
    assert not isinstance(object(), AttestationHook)


def test_public_key_pem():
    pem = SimulatedAttestor(device_id="bench").get_public_key_pem()
    assert pem.startswith("-----BEGIN PUBLIC KEY-----")


def test_record_dict_form():
    record = AttestationRecord(device_id="tpm-0", attestation_data=b"\xde\xad")
    restored = AttestationRecord.from_dict(record.to_dict())
    assert restored.device_id == "tpm-0"
    assert restored.attestation_data == b"\xde\xad"
    assert restored.timestamp == record.timestamp


def test_record_from_bad_dict():
    with pytest.raises(SerializationError):
        AttestationRecord.from_dict({"device_id": "tpm-0"})


def test_record_reads_offsetless_timestamp_as_utc():
    record = AttestationRecord.from_dict(
        {"device_id": "tpm-0", "timestamp": "2024-05-01T12:00:00", "attestation_data": ""}
    )
    assert record.timestamp == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
