"""Cryptographic components for pqledger."""

from .signatures import (
    DEFAULT_SCHEME,
    SUPPORTED_SCHEMES,
    DilithiumProvider,
    KeyPair,
    SignatureProvider,
    create_provider,
)

__all__ = [
    'DEFAULT_SCHEME',
    'SUPPORTED_SCHEMES',
    'DilithiumProvider',
    'KeyPair',
    'SignatureProvider',
    'create_provider',
]
