"""Post-quantum digital signatures for pqledger.

Signing sits behind the narrow :class:`SignatureProvider` contract so the
rest of the package never touches a concrete scheme. The stock provider wraps
the lattice-based CRYSTALS-Dilithium / ML-DSA implementations from
``dilithium-py``.
"""

import base64
from abc import ABC, abstractmethod
from typing import Any, Dict, Tuple
import logging

from dilithium_py.dilithium import Dilithium2, Dilithium3, Dilithium5
from dilithium_py.ml_dsa import ML_DSA_44, ML_DSA_65, ML_DSA_87
from pydantic import BaseModel, Field

from ..core.exceptions import (
    KeyGenerationError,
    MalformedInputError,
    SerializationError,
    SigningError,
)

logger = logging.getLogger(__name__)

DEFAULT_SCHEME = "dilithium2"

# scheme -> (implementation, public key, secret key, signature) sizes in bytes
_SCHEMES: Dict[str, Tuple[Any, int, int, int]] = {
    "dilithium2": (Dilithium2, 1312, 2528, 2420),
    "dilithium3": (Dilithium3, 1952, 4000, 3293),
    "dilithium5": (Dilithium5, 2592, 4864, 4595),
    "ml-dsa-44": (ML_DSA_44, 1312, 2560, 2420),
    "ml-dsa-65": (ML_DSA_65, 1952, 4032, 3309),
    "ml-dsa-87": (ML_DSA_87, 2592, 4896, 4627),
}

SUPPORTED_SCHEMES = tuple(_SCHEMES)


class KeyPair(BaseModel):
    """Public/secret signing keys bound to the scheme that produced them."""

    model_config = {"frozen": True}

    scheme: str = DEFAULT_SCHEME
    public_key: bytes
    secret_key: bytes = Field(repr=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert keypair to a JSON-safe dictionary."""
        return {
            "scheme": self.scheme,
            "public_key": base64.b64encode(self.public_key).decode("ascii"),
            "secret_key": base64.b64encode(self.secret_key).decode("ascii"),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KeyPair":
        """Create keypair from dictionary."""
        try:
            return cls(
                scheme=data["scheme"],
                public_key=base64.b64decode(data["public_key"], validate=True),
                secret_key=base64.b64decode(data["secret_key"], validate=True),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise SerializationError(f"Invalid keypair: {e}", field="keypair") from e


class SignatureProvider(ABC):
    """Abstract base class for signature providers."""

    scheme: str

    @abstractmethod
    def generate_keypair(self) -> KeyPair:
        """Generate a fresh keypair."""
        pass

    @abstractmethod
    def sign(self, secret_key: bytes, message: bytes) -> bytes:
        """Sign message and return the raw signature."""
        pass

    @abstractmethod
    def verify(self, public_key: bytes, message: bytes, signature: bytes) -> bool:
        """Verify signature for message."""
        pass

    def check_keypair(self, keypair: KeyPair) -> None:
        """Raise MalformedInputError if keypair cannot be used with this provider."""
        if keypair.scheme != self.scheme:
            raise MalformedInputError(
                f"Keypair scheme {keypair.scheme} does not match {self.scheme}", field="scheme"
            )


class DilithiumProvider(SignatureProvider):
    """Lattice-based signatures (CRYSTALS-Dilithium and FIPS 204 ML-DSA)."""

    def __init__(self, scheme: str = DEFAULT_SCHEME):
        scheme = scheme.lower()
        if scheme not in _SCHEMES:
            raise ValueError(
                f"Unsupported scheme: {scheme}. "
                f"Supported: {list(SUPPORTED_SCHEMES)}"
            )

        self.scheme = scheme
        (
            self._impl,
            self.public_key_size,
            self.secret_key_size,
            self.signature_size,
        ) = _SCHEMES[scheme]

    def __repr__(self) -> str:
        return f"DilithiumProvider(scheme={self.scheme!r})"

    def generate_keypair(self) -> KeyPair:
        """Generate a keypair using the operating system's randomness source."""
        try:
            public_key, secret_key = self._impl.keygen()
        except Exception as e:
            raise KeyGenerationError(
                f"{self.scheme} key generation failed: {e}", scheme=self.scheme
            ) from e

        logger.debug(f"Generated {self.scheme} keypair")
        return KeyPair(scheme=self.scheme, public_key=public_key, secret_key=secret_key)

    def sign(self, secret_key: bytes, message: bytes) -> bytes:
        """Sign message with a secret key of this provider's scheme."""
        if not isinstance(secret_key, (bytes, bytearray)):
            raise SigningError("Secret key must be bytes", scheme=self.scheme)
        if len(secret_key) != self.secret_key_size:
            raise SigningError(
                f"Secret key must be {self.secret_key_size} bytes for "
                f"{self.scheme}, got {len(secret_key)}",
                scheme=self.scheme,
            )

        try:
            return bytes(self._impl.sign(bytes(secret_key), bytes(message)))
        except Exception as e:
            raise SigningError(f"{self.scheme} signing failed: {e}", scheme=self.scheme) from e

    def verify(self, public_key: bytes, message: bytes, signature: bytes) -> bool:
        """Verify signature.

        Returns ``False`` for a signature that does not match. Buffers of the
        wrong length raise :class:`MalformedInputError`.
        """
        self._check_length("public_key", public_key, self.public_key_size)
        self._check_length("signature", signature, self.signature_size)

        try:
            return bool(self._impl.verify(bytes(public_key), bytes(message), bytes(signature)))
        except (ValueError, IndexError, AssertionError) as e:
            # Correctly sized garbage can trip the decoder; that is a mismatch.
            logger.debug(f"{self.scheme} signature failed to decode: {e}")
            return False

    def check_keypair(self, keypair: KeyPair) -> None:
        """Raise MalformedInputError for a foreign scheme or wrong-length keys."""
        super().check_keypair(keypair)
        self._check_length("public_key", keypair.public_key, self.public_key_size)
        self._check_length("secret_key", keypair.secret_key, self.secret_key_size)

    def _check_length(self, field: str, value: bytes, expected: int) -> None:
        if not isinstance(value, (bytes, bytearray)):
            raise MalformedInputError(f"{field} must be bytes", field=field)
        if len(value) != expected:
            raise MalformedInputError(
                f"{field} must be {expected} bytes for {self.scheme}, got {len(value)}",
                field=field,
                expected_length=expected,
                actual_length=len(value),
            )


def create_provider(scheme: str = DEFAULT_SCHEME) -> SignatureProvider:
    """Factory function to create a signature provider."""
    return DilithiumProvider(scheme)
