import pytest

from pqledger import Chain
from pqledger.crypto.signatures import DilithiumProvider


# Pure-Python key generation is slow; share keys across the session.

@pytest.fixture(scope="session")
def provider():
    return DilithiumProvider("dilithium2")


@pytest.fixture(scope="session")
def keypair(provider):
    return provider.generate_keypair()


@pytest.fixture(scope="session")
def other_keypair(provider):
    return provider.generate_keypair()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("PQLEDGER_CHAIN_NAME", "PQLEDGER_SCHEME", "PQLEDGER_STORE", "PQLEDGER_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def chain(provider, keypair):
    return Chain("L", keypair=keypair, provider=provider)


@pytest.fixture
def populated_chain(chain):
    for data in (b"alpha", b"beta", b"gamma", b"delta"):
        chain.add_transaction(data)
    return chain
