from pathlib import Path

import pytest

from pqledger.backends import JSONFileBackend, SQLiteBackend
from pqledger.config import LedgerConfig, create_backend
from pqledger.core.exceptions import ConfigurationError


def test_defaults():
    config = LedgerConfig.from_env({})
    assert config.chain_name == "Main Chain"
    assert config.scheme == "dilithium2"
    assert config.store_path is None
    assert config.log_level == "WARNING"


def test_reads_environment():
    config = LedgerConfig.from_env({
        "PQLEDGER_CHAIN_NAME": "Audit",
        "PQLEDGER_SCHEME": "ML-DSA-65",
        "PQLEDGER_STORE": "/tmp/audit.json",
        "PQLEDGER_LOG_LEVEL": "debug",
    })
    assert config.chain_name == "Audit"
    assert config.scheme == "ml-dsa-65"
    assert config.store_path == Path("/tmp/audit.json")
    assert config.log_level == "DEBUG"


def test_overrides_win_over_environment():
    config = LedgerConfig.from_env({"PQLEDGER_CHAIN_NAME": "Env"}, chain_name="Flag", scheme=None)
    assert config.chain_name == "Flag"
    assert config.scheme == "dilithium2"


def test_empty_store_means_no_store():
    assert LedgerConfig.from_env({"PQLEDGER_STORE": ""}).store_path is None


@pytest.mark.parametrize("setting,value", [
    ("scheme", "rsa"),
    ("log_level", "chatty"),
    ("chain_name", "   "),
])
def test_invalid_values(setting, value):
    with pytest.raises(ConfigurationError) as exc_info:
        LedgerConfig.load(**{setting: value})
    assert exc_info.value.setting == setting


def test_create_backend_by_suffix(tmp_path):
    assert create_backend(LedgerConfig()) is None

    json_backend = create_backend(LedgerConfig(store_path=tmp_path / "chain.json"))
    assert isinstance(json_backend, JSONFileBackend)

    sqlite_backend = create_backend(LedgerConfig(store_path=tmp_path / "chain.sqlite3"))
    assert isinstance(sqlite_backend, SQLiteBackend)
    sqlite_backend.close()
