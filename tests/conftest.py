"""
Test environment. Must be applied before ``fitsnap`` is imported, since
settings are read once and cached.
"""
import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="fitsnap-tests-")

os.environ["ENVIRONMENT"] = "DEV"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'fitsnap_test.db')}"
os.environ["LOG_DIR"] = os.path.join(_TMP_DIR, "logs")
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BUSINESS_METRICS_INTERVAL_SECONDS"] = "0"
os.environ["PROMETHEUS_PUSHGATEWAY_URL"] = ""
os.environ["STORAGE_PRESIGNED_REDIRECT"] = "false"
os.environ["SHUTDOWN_WAIT_SECONDS"] = "1"
