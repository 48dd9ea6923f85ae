#!/usr/bin/env python
"""Command-line interface for pqledger."""

import argparse
import hashlib
import logging
import sys
from typing import Callable, List, Optional

from pqledger import Chain, __version__
from pqledger.backends import StorageBackend
from pqledger.config import LedgerConfig, create_backend
from pqledger.core.exceptions import PQLedgerError
from pqledger.core.transaction import Transaction
from pqledger.crypto.signatures import SUPPORTED_SCHEMES, create_provider

logger = logging.getLogger(__name__)

SHELL_HELP = """Available commands:
  add <data>    - Add a new transaction with the specified data
  list          - List all transactions
  show <id>     - Show a single transaction
  verify [id]   - Verify one transaction, or the whole chain
  info          - Show chain details
  help          - Show this help message
  quit/exit     - Exit the program"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pqledger",
        description="pqledger - Quantum-Resistant Append-Only Ledger",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"pqledger {__version__}",
    )
    parser.add_argument("-s", "--store", help="Chain file (.json, or .db for SQLite)")
    parser.add_argument("-n", "--name", help="Chain name used when creating a chain")
    parser.add_argument("--scheme", choices=SUPPORTED_SCHEMES, help="Signature scheme for new chains")
    parser.add_argument("--log-level", help="Logging level (default: WARNING)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    add_parser = subparsers.add_parser("add", help="Add a new transaction")
    add_parser.add_argument("data", help="The data to add to the transaction")

    subparsers.add_parser("list", help="List all transactions")

    show_parser = subparsers.add_parser("show", help="Show a single transaction")
    show_parser.add_argument("id", help="Transaction id")

    verify_parser = subparsers.add_parser("verify", help="Verify a transaction or the whole chain")
    verify_parser.add_argument("id", nargs="?", help="Transaction id (default: whole chain)")

    subparsers.add_parser("info", help="Show chain details")
    subparsers.add_parser("interactive", help="Start interactive mode")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = LedgerConfig.from_env(
            chain_name=args.name,
            scheme=args.scheme,
            store_path=args.store,
            log_level=args.log_level,
        )
        logging.basicConfig(
            level=config.log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

        backend = create_backend(config)
        try:
            chain = open_chain(config, backend)

            if args.command == "add":
                return cmd_add(chain, backend, args.data)
            elif args.command == "list":
                return cmd_list(chain)
            elif args.command == "show":
                return cmd_show(chain, args.id)
            elif args.command == "verify":
                return cmd_verify(chain, args.id)
            elif args.command == "info":
                return cmd_info(chain)
            else:
                return interactive_mode(chain, backend)
        finally:
            if backend is not None:
                backend.close()

    except PQLedgerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def open_chain(config: LedgerConfig, backend: Optional[StorageBackend]) -> Chain:
    """Load the stored chain, or create a new one."""
    if backend is not None:
        chain = Chain.load(backend)
        if chain is not None:
            return chain

    chain = Chain(config.chain_name, provider=create_provider(config.scheme))
    if backend is not None:
        chain.save(backend)
    return chain


def cmd_add(chain: Chain, backend: Optional[StorageBackend], data: str) -> int:
    tx_id = chain.add_transaction(data.encode("utf-8"))
    if backend is not None:
        chain.save(backend)
    print(f"Transaction added successfully. ID: {tx_id}")
    return 0


def cmd_list(chain: Chain) -> int:
    transactions = chain.get_all_transactions()
    if not transactions:
        print("No transactions found")
        return 0

    print("Transactions:")
    for tx in transactions:
        print(format_transaction(tx))
        print()
    return 0


def cmd_show(chain: Chain, tx_id: str) -> int:
    tx = chain.get_transaction(tx_id)
    if tx is None:
        print(f"Transaction not found: {tx_id}")
        return 1

    print(format_transaction(tx))
    print(f"  Signature: {len(tx.signature or b'')} bytes")
    if tx.attestation:
        print(f"  Attested by: {tx.attestation.device_id} at {tx.attestation.timestamp.isoformat()}")
    print(f"  Valid: {'yes' if chain.verify_transaction(tx) else 'NO'}")
    return 0


def cmd_verify(chain: Chain, tx_id: Optional[str]) -> int:
    if tx_id is None:
        if chain.verify_chain():
            print(f"✓ Chain verified ({len(chain)} transactions)")
            return 0
        print("✗ Chain verification failed")
        return 1

    tx = chain.get_transaction(tx_id)
    if tx is None:
        print(f"Transaction not found: {tx_id}")
        return 1
    if chain.verify_transaction(tx):
        print(f"✓ Transaction {tx.id} verified")
        return 0
    print(f"✗ Transaction {tx.id} failed verification")
    return 1


def cmd_info(chain: Chain) -> int:
    fingerprint = hashlib.sha3_256(chain.public_key).hexdigest()[:32]
    print(f"Chain: {chain.name}")
    print(f"  ID: {chain.id}")
    print(f"  Created: {chain.created_at.isoformat()}")
    print(f"  Scheme: {chain.keypair.scheme}")
    print(f"  Key fingerprint: {fingerprint}")
    print(f"  Transactions: {len(chain)}")
    print(f"  Head: {chain.head or '-'}")
    return 0


def format_transaction(tx: Transaction) -> str:
    lines = [
        f"ID: {tx.id}",
        f"  Timestamp: {tx.timestamp.isoformat()}",
        f"  Data: {tx.data.decode('utf-8', errors='replace')}",
    ]
    if tx.previous_id:
        lines.append(f"  Previous Transaction: {tx.previous_id}")
    return "\n".join(lines)


def interactive_mode(
    chain: Chain,
    backend: Optional[StorageBackend] = None,
    input_func: Callable[[str], str] = input,
) -> int:
    """Run the interactive shell until quit, exit or end of input."""
    print(f"pqledger v{__version__}")
    print("Enter 'help' for available commands")

    while True:
        try:
            line = input_func("> ")
        except EOFError:
            break

        command, _, argument = line.strip().partition(" ")
        argument = argument.strip()

        if not command:
            continue
        if command in ("quit", "exit"):
            break

        try:
            if command == "help":
                print(SHELL_HELP)
            elif command == "add" and argument:
                cmd_add(chain, backend, argument)
            elif command == "list":
                cmd_list(chain)
            elif command == "show" and argument:
                cmd_show(chain, argument)
            elif command == "verify":
                cmd_verify(chain, argument or None)
            elif command == "info":
                cmd_info(chain)
            else:
                print("Unknown command. Type 'help' for available commands")
        except PQLedgerError as e:
            print(f"Error: {e}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
