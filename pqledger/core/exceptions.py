"""Exception classes for pqledger."""

from typing import Optional, Any


class PQLedgerError(Exception):
    """Base exception for all pqledger errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class KeyGenerationError(PQLedgerError):
    """Raised when a signing keypair cannot be generated."""

    def __init__(self, message: str, scheme: Optional[str] = None):
        super().__init__(message, {"scheme": scheme})
        self.scheme = scheme


class SigningError(PQLedgerError):
    """Raised when signing fails, usually because of bad key material."""

    def __init__(
        self,
        message: str,
        scheme: Optional[str] = None,
        transaction_id: Optional[str] = None,
    ):
        details = {"scheme": scheme, "transaction_id": transaction_id}
        super().__init__(message, details)
        self.scheme = scheme
        self.transaction_id = transaction_id


class MalformedInputError(PQLedgerError):
    """Raised when a key or signature buffer has the wrong shape.

    A signature that is well formed but simply does not match is not an
    error: verification returns ``False`` for it.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        expected_length: Optional[int] = None,
        actual_length: Optional[int] = None,
    ):
        details = {
            "field": field,
            "expected_length": expected_length,
            "actual_length": actual_length,
        }
        super().__init__(message, details)
        self.field = field
        self.expected_length = expected_length
        self.actual_length = actual_length


class AttestationError(PQLedgerError):
    """Raised when an attestation hook fails to produce a record."""

    def __init__(self, message: str, transaction_id: Optional[str] = None):
        super().__init__(message, {"transaction_id": transaction_id})
        self.transaction_id = transaction_id


class SerializationError(PQLedgerError):
    """Raised when persisted chain state cannot be decoded."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        details = {"field": field, "value": value}
        super().__init__(message, details)
        self.field = field
        self.value = value


class IntegrityError(PQLedgerError):
    """Raised when a loaded chain fails verification."""

    def __init__(
        self,
        message: str,
        chain_id: Optional[str] = None,
        transaction_id: Optional[str] = None,
    ):
        details = {"chain_id": chain_id, "transaction_id": transaction_id}
        super().__init__(message, details)
        self.chain_id = chain_id
        self.transaction_id = transaction_id


class StorageError(PQLedgerError):
    """Raised when storage operations fail."""

    def __init__(self, message: str, operation: str, backend: Optional[str] = None):
        details = {"operation": operation, "backend": backend}
        super().__init__(message, details)
        self.operation = operation
        self.backend = backend


class ConfigurationError(PQLedgerError):
    """Raised for invalid configuration values."""

    def __init__(self, message: str, setting: Optional[str] = None, value: Any = None):
        details = {"setting": setting, "value": value}
        super().__init__(message, details)
        self.setting = setting
        self.value = value
