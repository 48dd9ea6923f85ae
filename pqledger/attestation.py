"""Hardware attestation extension point for pqledger.

A chain may be given an attestation hook: any object with an
``attest(payload) -> AttestationRecord`` method. The chain calls it once per
transaction, after signing, and stores whatever record comes back. The chain
never inspects the record; checking it is up to whoever supplied the hook.
"""

import base64
import itertools
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol, runtime_checkable
import logging

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519
from pydantic import BaseModel, Field

from .core.canonical import parse_timestamp
from .core.exceptions import SerializationError

logger = logging.getLogger(__name__)


class AttestationRecord(BaseModel):
    """Opaque evidence produced by an attestation device."""

    model_config = {"frozen": True}

    device_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    attestation_data: bytes = b""

    def to_dict(self) -> Dict[str, Any]:
        """Convert record to dictionary."""
        return {
            "device_id": self.device_id,
            "timestamp": self.timestamp.isoformat(),
            "attestation_data": base64.b64encode(self.attestation_data).decode("ascii"),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AttestationRecord":
        """Create record from dictionary."""
        try:
            return cls(
                device_id=data["device_id"],
                timestamp=parse_timestamp(data["timestamp"]),
                attestation_data=base64.b64decode(data["attestation_data"], validate=True),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise SerializationError(f"Invalid attestation record: {e}", field="attestation") from e


@runtime_checkable
class AttestationHook(Protocol):
    """Capability that binds device evidence to a transaction payload."""

    def attest(self, payload: bytes) -> AttestationRecord:
        ...


class SimulatedAttestor:
    """Software stand-in for a TPM or secure enclave.

    Signs each payload with a process-local Ed25519 key. Useful for
    development and tests; it offers none of the guarantees of real hardware.
    """

    _counter = itertools.count(1)

    def __init__(
        self,
        device_id: Optional[str] = None,
        private_key: Optional[ed25519.Ed25519PrivateKey] = None,
    ):
        self.device_id = device_id or f"SIMULATED-TPM-{next(self._counter):02d}"
        self._private_key = private_key or ed25519.Ed25519PrivateKey.generate()
        self._public_key = self._private_key.public_key()

    def attest(self, payload: bytes) -> AttestationRecord:
        """Sign payload and wrap the signature in an attestation record."""
        logger.debug(f"Attesting {len(payload)} byte payload on {self.device_id}")
        return AttestationRecord(
            device_id=self.device_id,
            attestation_data=self._private_key.sign(payload),
        )

    def verify(self, payload: bytes, record: AttestationRecord) -> bool:
        """Check that record was produced by this device for payload."""
        if record.device_id != self.device_id:
            return False
        try:
            self._public_key.verify(record.attestation_data, payload)
        except InvalidSignature:
            return False
        return True

    def get_public_key_pem(self) -> str:
        """Get the device public key in PEM format."""
        pem = self._public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        return pem.decode("utf-8")
