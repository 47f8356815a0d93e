import os
import sys
import tempfile
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Settings are read once at import time, so test defaults must be in place first.
_TEST_DATA_DIR = tempfile.mkdtemp(prefix="career-identity-tests-")
os.environ.setdefault("EMBEDDING_PROVIDER", "simple")
os.environ.setdefault("IDENTITY_DB_PATH", os.path.join(_TEST_DATA_DIR, "identity.db"))
os.environ.setdefault("USAGE_LOG_DB_PATH", os.path.join(_TEST_DATA_DIR, "ai_usage.db"))
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")
os.environ.setdefault("TICKER_INTERVAL_S", "0.05")
os.environ.pop("API_KEY", None)
