import os
from typing import Any, Dict, List, Optional

import requests

from runway.percentile import InMemoryRunStore, RunStore, StoreUnavailableError

SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_KEY = os.getenv("SUPABASE_KEY", "")
SUPABASE_TABLE = os.getenv("SUPABASE_TABLE", "results")
SUPABASE_TIMEOUT = float(os.getenv("SUPABASE_TIMEOUT", "5"))


class SupabaseRunStore(RunStore):
    """Run store backed by a Supabase table through its PostgREST endpoint."""

    def __init__(
        self,
        url: str,
        key: str,
        table: str = "results",
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = url.rstrip("/")
        self.key = key
        self.table = table
        self.timeout = timeout
        self.session = session or requests.Session()

    def _endpoint(self) -> str:
        return f"{self.url}/rest/v1/{self.table}"

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {"apikey": self.key, "Authorization": f"Bearer {self.key}"}
        if extra:
            headers.update(extra)
        return headers

    def _request(self, method: str, **kwargs: Any) -> requests.Response:
        try:
            resp = self.session.request(method, self._endpoint(), timeout=self.timeout, **kwargs)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise StoreUnavailableError(f"{method} {self.table} failed: {exc}") from exc
        return resp

    def ping(self) -> None:
        self._request("GET", params={"select": "days", "limit": "1"}, headers=self._headers())

    def insert_run(self, label: str, days: int) -> None:
        self._request(
            "POST",
            json=[{"city": label, "days": days}],
            headers=self._headers({"Prefer": "return=minimal"}),
        )

    def fetch_days(self) -> List[int]:
        resp = self._request(
            "GET",
            params={"select": "days", "order": "days.asc"},
            headers=self._headers(),
        )
        try:
            rows = resp.json()
        except ValueError as exc:
            raise StoreUnavailableError(f"unreadable response from {self.table}") from exc
        return [row["days"] for row in rows if row.get("days") is not None]


def build_run_store() -> RunStore:
    if not SUPABASE_URL:
        return InMemoryRunStore()
    return SupabaseRunStore(SUPABASE_URL, SUPABASE_KEY, table=SUPABASE_TABLE, timeout=SUPABASE_TIMEOUT)
