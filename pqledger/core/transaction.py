"""Signed transaction records for pqledger."""

import base64
import json
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from .canonical import canonical_payload, format_timestamp, parse_timestamp
from .exceptions import MalformedInputError, SerializationError
from ..attestation import AttestationRecord
from ..crypto.signatures import SignatureProvider

logger = logging.getLogger(__name__)


class Transaction(BaseModel):
    """Immutable ledger transaction.

    Signing and attesting never modify a transaction; they return a copy with
    the new field filled in.
    """

    model_config = {"frozen": True}

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data: bytes
    previous_id: Optional[uuid.UUID] = None
    signature: Optional[bytes] = Field(default=None, repr=False)
    attestation: Optional[AttestationRecord] = None

    @classmethod
    def new(cls, data: bytes, previous_id: Optional[uuid.UUID] = None) -> "Transaction":
        """Create an unsigned transaction with a fresh id and timestamp."""
        return cls(data=data, previous_id=previous_id)

    @property
    def is_signed(self) -> bool:
        return self.signature is not None

    def canonical_payload(self) -> bytes:
        """Bytes covered by the signature: id, timestamp, data and previous_id."""
        return canonical_payload(self.id, self.timestamp, self.data, self.previous_id)

    def sign(self, secret_key: bytes, provider: SignatureProvider) -> "Transaction":
        """Sign the canonical payload.

        Args:
            secret_key: Secret key for the provider's scheme
            provider: Signature provider

        Returns:
            Signed copy of this transaction

        Raises:
            SigningError: If the key is invalid or signing fails
        """
        signature = provider.sign(secret_key, self.canonical_payload())
        return self.model_copy(update={"signature": signature})

    def verify(self, public_key: bytes, provider: SignatureProvider) -> bool:
        """Check the stored signature against the canonical payload.

        Unsigned transactions and stored signatures of the wrong size count as
        mismatches. A malformed public key raises ``MalformedInputError``.
        """
        if self.signature is None:
            return False

        try:
            return provider.verify(public_key, self.canonical_payload(), self.signature)
        except MalformedInputError as e:
            if e.field != "signature":
                raise
            logger.debug(f"Transaction {self.id} carries a malformed signature: {e}")
            return False

    def with_attestation(self, record: AttestationRecord) -> "Transaction":
        """Return a copy carrying the attestation record."""
        return self.model_copy(update={"attestation": record})

    def to_dict(self) -> Dict[str, Any]:
        """Convert transaction to dictionary."""
        return {
            "id": str(self.id),
            "timestamp": format_timestamp(self.timestamp),
            "data": base64.b64encode(self.data).decode("ascii"),
            "previous_id": str(self.previous_id) if self.previous_id else None,
            "signature": (
                base64.b64encode(self.signature).decode("ascii")
                if self.signature is not None
                else None
            ),
            "attestation": self.attestation.to_dict() if self.attestation else None,
        }

    def to_json(self) -> str:
        """Convert transaction to JSON string."""
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        """Create transaction from dictionary.

        Raises:
            SerializationError: If any field is missing or malformed
        """
        try:
            signature = data.get("signature")
            attestation = data.get("attestation")
            previous_id = data.get("previous_id")
            return cls(
                id=uuid.UUID(data["id"]),
                timestamp=parse_timestamp(data["timestamp"]),
                data=base64.b64decode(data["data"], validate=True),
                previous_id=uuid.UUID(previous_id) if previous_id else None,
                signature=(
                    base64.b64decode(signature, validate=True)
                    if signature is not None
                    else None
                ),
                attestation=(
                    AttestationRecord.from_dict(attestation) if attestation else None
                ),
            )
        except (KeyError, TypeError, ValueError, AttributeError, PydanticValidationError) as e:
            tx_id = data.get("id") if isinstance(data, dict) else None
            raise SerializationError(f"Invalid transaction: {e}", field="transaction", value=tx_id) from e
