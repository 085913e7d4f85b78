from __future__ import annotations

from unittest.mock import Mock

import pytest

from dcprov.keychain import SecretStore
from dcprov.paginator import Page
from dcprov.runtime import CliRuntime


class MemorySecretStore(SecretStore):
    """In-memory stand-in for the OS credential vault."""

    def __init__(self, entries=None):
        self.entries = dict(entries or {})
        self.calls = []

    def get(self, domain):
        self.calls.append(("get", domain))
        return self.entries.get(domain)

    def set(self, domain, token):
        self.calls.append(("set", domain))
        self.entries[domain] = token

    def delete(self, domain):
        self.calls.append(("delete", domain))
        self.entries.pop(domain, None)


@pytest.fixture
def memory_store():
    return MemorySecretStore()


@pytest.fixture
def runtime(memory_store):
    return CliRuntime(secret_store=memory_store, page_size=500, show_stacktraces=False)


def make_records(start, count, prefix="company"):
    return [{"id": i, "companyName": f"{prefix}{i}"} for i in range(start, start + count)]


class FakePages:
    """fetch_page stand-in serving fixed page sizes and recording calls."""

    def __init__(self, sizes, total=None, totals=None):
        self.sizes = list(sizes)
        self.total = sum(self.sizes) if total is None else total
        self.totals = totals
        self.calls = []
        self.served = 0

    def __call__(self, offset, limit):
        index = len(self.calls)
        self.calls.append((offset, limit))
        size = self.sizes[index] if index < len(self.sizes) else 0
        total = self.totals[index] if self.totals else self.total
        items = make_records(self.served, size)
        self.served += size
        return Page(items=items, total=total, offset=offset)


@pytest.fixture
def fake_pages():
    return FakePages


def json_response(payload, status_code=200):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    response.content = b"{}" if payload is not None else b""
    response.text = str(payload)
    response.reason = "OK" if status_code < 400 else "Error"
    return response


def list_payload(items, total, offset=0, limit=500):
    return {"range": {"offset": offset, "limit": limit, "total": total}, "items": items}
