import pytest
import requests

from app.storage import supabase_client
from app.storage.supabase_client import SupabaseRunStore, build_run_store
from runway.percentile import InMemoryRunStore, PercentileService, StoreUnavailableError


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse(payload=[])
        self.error = error
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def _store(session):
    return SupabaseRunStore("https://example.supabase.co/", "anon-key", session=session)


def test_fetch_days_reads_rows():
    session = FakeSession(FakeResponse(payload=[{"days": 300}, {"days": None}, {"days": 6600}]))
    assert _store(session).fetch_days() == [300, 6600]
    method, url, kwargs = session.calls[0]
    assert method == "GET"
    assert url == "https://example.supabase.co/rest/v1/results"
    assert kwargs["params"]["select"] == "days"
    assert kwargs["headers"]["apikey"] == "anon-key"
    assert kwargs["headers"]["Authorization"] == "Bearer anon-key"


def test_insert_run_posts_row():
    session = FakeSession(FakeResponse(status_code=201))
    _store(session).insert_run("Chengdu", 6600)
    method, _, kwargs = session.calls[0]
    assert method == "POST"
    assert kwargs["json"] == [{"city": "Chengdu", "days": 6600}]
    assert kwargs["headers"]["Prefer"] == "return=minimal"


def test_http_error_becomes_store_unavailable():
    with pytest.raises(StoreUnavailableError):
        _store(FakeSession(FakeResponse(status_code=503))).ping()


def test_connection_error_becomes_store_unavailable():
    with pytest.raises(StoreUnavailableError):
        _store(FakeSession(error=requests.ConnectionError("refused"))).fetch_days()


def test_unreadable_body_becomes_store_unavailable():
    with pytest.raises(StoreUnavailableError):
        _store(FakeSession(FakeResponse(payload=None))).fetch_days()


def test_service_over_unreachable_supabase():
    service = PercentileService(_store(FakeSession(error=requests.Timeout("slow"))))
    assert service.get_percentile(1000) is None
    assert service.advisory is not None


def test_build_run_store_without_url(monkeypatch):
    monkeypatch.setattr(supabase_client, "SUPABASE_URL", "")
    assert isinstance(build_run_store(), InMemoryRunStore)


def test_build_run_store_with_url(monkeypatch):
    monkeypatch.setattr(supabase_client, "SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setattr(supabase_client, "SUPABASE_TABLE", "runs")
    store = build_run_store()
    assert isinstance(store, SupabaseRunStore)
    assert store.table == "runs"
