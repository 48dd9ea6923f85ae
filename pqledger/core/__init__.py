"""Core transaction and chain model for pqledger."""
