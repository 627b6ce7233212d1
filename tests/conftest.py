"""
Pytest configuration and shared fixtures for protected_config tests.
"""

import json
import logging
import os
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Generator

import pytest

# Add the parent directory to the path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from protected_config.cipher import StringCipher
from protected_config.envelope import EnvelopeCipher


TEST_PASSWORD = "yourPassword"


# ===========================================================================
# Logging
# ===========================================================================

@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo setup_logging() so caplog keeps seeing package records."""
    yield
    package_logger = logging.getLogger("protected_config")
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


# ===========================================================================
# Temporary Directory Fixtures
# ===========================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that is cleaned up after the test."""
    tmpdir = tempfile.mkdtemp(prefix="protected_config_test_")
    yield Path(tmpdir)
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def write_json(temp_dir: Path) -> Callable[..., Path]:
    """Write a document as indented JSON and return its path."""
    def _write(document: Any, name: str = "appsettings.json") -> Path:
        path = temp_dir / name
        path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        return path
    return _write


# ===========================================================================
# Cipher Fixtures
# ===========================================================================

@pytest.fixture
def fast_cipher() -> StringCipher:
    """StringCipher with a low iteration count to keep tests fast."""
    return StringCipher(iterations=1000)


@pytest.fixture
def envelope_cipher(fast_cipher: StringCipher) -> EnvelopeCipher:
    """EnvelopeCipher bound to the test password."""
    return EnvelopeCipher(TEST_PASSWORD, fast_cipher)


# ===========================================================================
# Sample Configuration
# ===========================================================================

@pytest.fixture
def sample_document() -> Dict[str, Any]:
    """Configuration document with secrets at several depths."""
    return {
        "Logging": {"LogLevel": {"Default": "Information"}},
        "SomeApi": {
            "Url": "https://api.example.com",
            "Secret": "api-secret-value",
            "TimeoutSeconds": 30,
        },
        "DBConnection": "Server=db;User Id=app;Password=hunter2;",
        "Servers": [
            {"Name": "primary", "Password": "pw-primary"},
            {"Name": "replica", "Password": "pw-replica"},
        ],
        "Enabled": True,
        "Nothing": None,
    }


@pytest.fixture
def sample_config_file(write_json, sample_document) -> Path:
    """Sample document written to appsettings.json."""
    return write_json(sample_document)
