"""pqledger - Quantum-Resistant Append-Only Ledger.

An append-only chain of transactions, each signed with a lattice-based
(CRYSTALS-Dilithium / ML-DSA) signature and linked to its predecessor, so
that edits, truncation and reordering can all be detected after the fact.
"""

from pqledger.core.chain import Chain
from pqledger.core.transaction import Transaction
from pqledger.core.exceptions import (
    PQLedgerError,
    KeyGenerationError,
    SigningError,
    MalformedInputError,
    AttestationError,
    SerializationError,
    IntegrityError,
    StorageError,
    ConfigurationError,
)
from pqledger.attestation import AttestationHook, AttestationRecord, SimulatedAttestor
from pqledger.crypto.signatures import DilithiumProvider, KeyPair, SignatureProvider, create_provider

__version__ = "0.1.0"

__all__ = [
    "Chain",
    "Transaction",
    "KeyPair",
    "SignatureProvider",
    "DilithiumProvider",
    "create_provider",
    "AttestationHook",
    "AttestationRecord",
    "SimulatedAttestor",
    "PQLedgerError",
    "KeyGenerationError",
    "SigningError",
    "MalformedInputError",
    "AttestationError",
    "SerializationError",
    "IntegrityError",
    "StorageError",
    "ConfigurationError",
]
