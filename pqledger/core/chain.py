"""Append-only chain of signed transactions."""

import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union
import logging

from .canonical import parse_timestamp
from .exceptions import (
    AttestationError,
    ConfigurationError,
    IntegrityError,
    MalformedInputError,
    SerializationError,
)
from .transaction import Transaction
from ..attestation import AttestationHook, AttestationRecord
from ..crypto.signatures import DEFAULT_SCHEME, KeyPair, SignatureProvider, create_provider

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


class Chain:
    """Ordered, tamper-evident sequence of post-quantum signed transactions.

    Each new transaction records the id of the current head as its
    ``previous_id`` and is signed with the chain's secret key, so both edits
    to a record and reordering of records are detectable.

    All public methods hold one re-entrant lock, so callers on different
    threads never see a transaction before it is fully signed and attested.
    """

    def __init__(
        self,
        name: str,
        keypair: Optional[KeyPair] = None,
        provider: Optional[SignatureProvider] = None,
        attestation_hook: Optional[AttestationHook] = None,
        chain_id: Optional[uuid.UUID] = None,
        created_at: Optional[datetime] = None,
    ):
        if provider is None:
            provider = create_provider(keypair.scheme if keypair else DEFAULT_SCHEME)
        if keypair is not None and keypair.scheme != provider.scheme:
            raise ConfigurationError(
                f"Keypair scheme {keypair.scheme} does not match provider scheme {provider.scheme}",
                setting="scheme",
                value=keypair.scheme,
            )

        self.name = name
        self.id = chain_id or uuid.uuid4()
        self.created_at = created_at or datetime.now(timezone.utc)
        self.provider = provider
        self.keypair = keypair or provider.generate_keypair()
        self.attestation_hook = attestation_hook

        self._transactions: List[Transaction] = []
        self._positions: Dict[uuid.UUID, int] = {}
        self._lock = threading.RLock()

        logger.debug(f"Created chain {self.name!r} ({self.id}) using {provider.scheme}")

    def __repr__(self) -> str:
        return f"Chain(name={self.name!r}, id={self.id}, transactions={len(self)})"

    def __len__(self) -> int:
        with self._lock:
            return len(self._transactions)

    @property
    def head(self) -> Optional[uuid.UUID]:
        """Id of the most recently appended transaction."""
        with self._lock:
            return self._transactions[-1].id if self._transactions else None

    @property
    def public_key(self) -> bytes:
        """Public key that verifies this chain's signatures."""
        return self.keypair.public_key

    def add_transaction(self, data: bytes) -> uuid.UUID:
        """Append a new signed transaction.

        Args:
            data: Opaque payload

        Returns:
            Id of the new transaction

        Raises:
            SigningError: If signing fails
            AttestationError: If the attestation hook fails
        """
        with self._lock:
            transaction = Transaction.new(bytes(data), previous_id=self.head)
            transaction = transaction.sign(self.keypair.secret_key, self.provider)

            if self.attestation_hook is not None:
                transaction = transaction.with_attestation(self._attest(transaction))

            self._append(transaction)

        logger.debug(f"Added transaction {transaction.id} ({len(transaction.data)} bytes)")
        return transaction.id

    def _attest(self, transaction: Transaction) -> AttestationRecord:
        try:
            record = self.attestation_hook.attest(transaction.canonical_payload())
        except Exception as e:
            raise AttestationError(
                f"Attestation failed: {e}", transaction_id=str(transaction.id)
            ) from e

        if not isinstance(record, AttestationRecord):
            raise AttestationError(
                f"Attestation hook returned {type(record).__name__}, expected AttestationRecord",
                transaction_id=str(transaction.id),
            )
        return record

    def _append(self, transaction: Transaction) -> None:
        # Duplicate ids are not rejected; the newest position wins the lookup.
        self._positions[transaction.id] = len(self._transactions)
        self._transactions.append(transaction)

    def get_transaction(self, transaction_id: Union[uuid.UUID, str]) -> Optional[Transaction]:
        """Get transaction by id, or None if unknown."""
        if not isinstance(transaction_id, uuid.UUID):
            try:
                transaction_id = uuid.UUID(str(transaction_id))
            except ValueError:
                return None

        with self._lock:
            position = self._positions.get(transaction_id)
            return self._transactions[position] if position is not None else None

    def get_all_transactions(self) -> List[Transaction]:
        """Snapshot of every transaction in insertion order."""
        with self._lock:
            return list(self._transactions)

    def get_transactions_since(self, since: datetime) -> List[Transaction]:
        """Transactions whose timestamp is at or after ``since``."""
        if since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)
        with self._lock:
            return [tx for tx in self._transactions if tx.timestamp >= since]

    def verify_transaction(self, transaction: Transaction) -> bool:
        """Verify a transaction against this chain.

        True only if the signature verifies under this chain's public key and
        the transaction is a member whose ``previous_id`` names the member
        just before it (or is None for the first member).
        """
        with self._lock:
            position = self._positions.get(transaction.id)
            if position is None:
                logger.debug(f"Transaction {transaction.id} is not part of chain {self.id}")
                return False
            return self._verify_at(transaction, position)

    def _verify_at(self, transaction: Transaction, position: int) -> bool:
        expected_previous = self._transactions[position - 1].id if position > 0 else None
        if transaction.previous_id != expected_previous:
            logger.debug(
                f"Transaction {transaction.id} links to {transaction.previous_id}, "
                f"expected {expected_previous}"
            )
            return False

        if not transaction.verify(self.public_key, self.provider):
            logger.debug(f"Invalid signature for transaction {transaction.id}")
            return False

        return True

    def verify_chain(self) -> bool:
        """Verify every transaction and the unbroken linkage between them."""
        with self._lock:
            for position, transaction in enumerate(self._transactions):
                if self._positions.get(transaction.id) != position:
                    logger.debug(f"Transaction {transaction.id} appears more than once")
                    return False
                if not self._verify_at(transaction, position):
                    return False
            return True

    @classmethod
    def from_transactions(
        cls,
        name: str,
        transactions: Iterable[Transaction],
        keypair: KeyPair,
        provider: Optional[SignatureProvider] = None,
        attestation_hook: Optional[AttestationHook] = None,
        chain_id: Optional[uuid.UUID] = None,
        created_at: Optional[datetime] = None,
    ) -> "Chain":
        """Rebuild a chain from already signed transactions.

        Nothing is re-signed and linkage is not checked here; call
        :meth:`verify_chain` to find out whether the sequence is intact.
        """
        chain = cls(
            name,
            keypair=keypair,
            provider=provider,
            attestation_hook=attestation_hook,
            chain_id=chain_id,
            created_at=created_at,
        )
        for transaction in transactions:
            chain._append(transaction)
        return chain

    def to_dict(self) -> Dict[str, Any]:
        """Convert chain, including its keypair, to a JSON-safe document."""
        with self._lock:
            return {
                "format_version": FORMAT_VERSION,
                "id": str(self.id),
                "name": self.name,
                "created_at": self.created_at.isoformat(),
                "keypair": self.keypair.to_dict(),
                "transactions": [tx.to_dict() for tx in self._transactions],
            }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        provider: Optional[SignatureProvider] = None,
        attestation_hook: Optional[AttestationHook] = None,
    ) -> "Chain":
        """Create chain from a document produced by :meth:`to_dict`.

        Raises:
            SerializationError: If the document is malformed
        """
        if not isinstance(data, dict):
            raise SerializationError("Chain document must be a mapping", field="chain")

        version = data.get("format_version")
        if version != FORMAT_VERSION:
            raise SerializationError(
                f"Unsupported chain format version: {version}",
                field="format_version",
                value=version,
            )

        try:
            chain_id = uuid.UUID(data["id"])
            name = data["name"]
            created_at = parse_timestamp(data["created_at"])
            raw_keypair = data["keypair"]
            raw_transactions = data["transactions"]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise SerializationError(f"Invalid chain document: {e}", field="chain") from e

        if not isinstance(name, str):
            raise SerializationError("Chain name must be a string", field="name", value=name)
        if not isinstance(raw_keypair, dict):
            raise SerializationError("Keypair must be a mapping", field="keypair")
        if not isinstance(raw_transactions, list):
            raise SerializationError("Transactions must be a list", field="transactions")

        keypair = KeyPair.from_dict(raw_keypair)
        transactions = [Transaction.from_dict(item) for item in raw_transactions]

        if provider is None:
            try:
                provider = create_provider(keypair.scheme)
            except ValueError as e:
                raise SerializationError(str(e), field="scheme", value=keypair.scheme) from e

        try:
            provider.check_keypair(keypair)
        except MalformedInputError as e:
            raise SerializationError(f"Invalid keypair: {e}", field="keypair") from e

        return cls.from_transactions(
            name,
            transactions,
            keypair=keypair,
            provider=provider,
            attestation_hook=attestation_hook,
            chain_id=chain_id,
            created_at=created_at,
        )

    def save(self, backend) -> None:
        """Write the whole chain to a storage backend."""
        with self._lock:
            backend.save(self.to_dict())
            logger.info(f"Saved chain {self.name!r} with {len(self._transactions)} transactions")

    @classmethod
    def load(
        cls,
        backend,
        provider: Optional[SignatureProvider] = None,
        attestation_hook: Optional[AttestationHook] = None,
        verify: bool = False,
    ) -> Optional["Chain"]:
        """Read a chain from a storage backend.

        Args:
            backend: Storage backend
            provider: Signature provider (defaults to the stored scheme)
            attestation_hook: Hook for transactions added after loading
            verify: Raise IntegrityError if the loaded chain does not verify

        Returns:
            The chain, or None if the backend holds nothing

        Raises:
            SerializationError: If the stored document is malformed
            IntegrityError: If ``verify`` is set and verification fails
        """
        document = backend.load()
        if document is None:
            return None

        chain = cls.from_dict(document, provider=provider, attestation_hook=attestation_hook)
        if verify and not chain.verify_chain():
            raise IntegrityError(f"Chain {chain.name!r} failed verification", chain_id=str(chain.id))

        logger.info(f"Loaded chain {chain.name!r} with {len(chain)} transactions")
        return chain
