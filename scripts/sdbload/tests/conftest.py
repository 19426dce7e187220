"""Shared fixtures: a controllable clock, an in-memory store and a quiet logger."""
import io
import threading

import pytest
from botocore.exceptions import ClientError

from sdbload.logger import LogLevel, StructuredLogger, set_logger


ENV_VARS = [
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_REGION",
    "AWS_DEFAULT_REGION",
    "SDBLOAD_DOMAIN_COUNT",
    "SDBLOAD_DOMAIN_PREFIX",
    "SDBLOAD_BATCH_COUNT",
    "SDBLOAD_THREAD_COUNT",
    "SDBLOAD_MIN_RPS",
    "SDBLOAD_MAX_RPS",
    "SDBLOAD_RAMP_TIME",
    "SDBLOAD_REGION",
    "SDBLOAD_ENDPOINT_URL",
    "SDBLOAD_MAX_ATTEMPTS",
    "SDBLOAD_CONNECT_TIMEOUT",
    "SDBLOAD_READ_TIMEOUT",
    "SDBLOAD_REPLACE_ATTRIBUTES",
]


class FakeClock:
    """Monotonic clock that only moves when slept on or advanced."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float):
        self.now += seconds


def make_client_error(code="ServiceUnavailable", status=503, error_type="Receiver",
                      request_id="req-0001", operation="BatchPutAttributes"):
    return ClientError(
        {
            "Error": {"Code": code, "Type": error_type, "Message": f"{code} happened"},
            "ResponseMetadata": {"HTTPStatusCode": status, "RequestId": request_id},
        },
        operation,
    )


class RecordingStore:
    """In-memory stand-in for SimpleDBStore that remembers every call."""

    def __init__(self, fail_domains=(), error=None):
        self.fail_domains = set(fail_domains)
        self.error = error
        self.batches = []
        self.created = []
        self.deleted = []
        self.existing = set()
        self._lock = threading.Lock()

    def put_batch(self, domain_name, records):
        if domain_name in self.fail_domains:
            raise self.error or make_client_error()
        with self._lock:
            self.batches.append((domain_name, [r.item_name for r in records]))
        return len(records)

    def create_domain(self, domain_name):
        if domain_name in self.fail_domains:
            raise self.error or make_client_error(operation="CreateDomain")
        with self._lock:
            self.created.append(domain_name)
            self.existing.add(domain_name)

    def delete_domain(self, domain_name):
        if domain_name in self.fail_domains:
            raise self.error or make_client_error(operation="DeleteDomain")
        with self._lock:
            self.deleted.append(domain_name)
            self.existing.discard(domain_name)

    def list_domains(self):
        return sorted(self.existing)

    def domain_metadata(self, domain_name):
        count = sum(len(items) for name, items in self.batches if name == domain_name)
        return {"items": count, "attribute_names": 4, "attribute_values": count * 4, "size_bytes": 0}

    def test_connection(self):
        return True

    def sizes_by_domain(self):
        sizes = {}
        for name, items in self.batches:
            sizes.setdefault(name, []).append(len(items))
        return sizes


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture(autouse=True)
def quiet_logger():
    """Route log output into buffers the tests can inspect."""
    out, err = io.StringIO(), io.StringIO()
    set_logger(StructuredLogger(min_level=LogLevel.DEBUG, show_timestamp=False, out=out, err=err))
    yield out, err
    set_logger(StructuredLogger())


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No loader variables in the environment and no .env file in the working directory."""
    for name in ENV_VARS:
        # setenv first so the variable is removed again on undo even if
        # a .env file sets it during the test
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return monkeypatch
