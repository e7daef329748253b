import os
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

_DEFAULT_ENV = {
    "GPLUS_LOG_TO_CONSOLE": "false",
    "GPLUS_LOG_DIR": tempfile.mkdtemp(prefix="gplus-test-logs-"),
    "GPLUS_CREDENTIAL_STORE_DIR": tempfile.mkdtemp(prefix="gplus-test-store-"),
}

for _key, _value in _DEFAULT_ENV.items():
    os.environ.setdefault(_key, _value)


def pytest_configure():
    """Ensure environment variables are populated before settings initialise."""

    for key, value in _DEFAULT_ENV.items():
        os.environ.setdefault(key, value)
