"""Feishu (Lark) Bitable client used to pull dashboard records.

`FeishuClient` obtains an app access token and pages through a Bitable
table's records. `fetch_dataset` wires it to the tables configured in
`Settings`.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from voice_pipeline.config import Settings

log = logging.getLogger(__name__)

BASE = "https://open.feishu.cn/open-apis"
TOKEN_PATH = "/auth/v3/app_access_token/internal"
RECORDS_PATH = "/bitable/v1/apps/{app_id}/tables/{table_id}/records"

DEFAULT_PAGE_SIZE = 500


class FeishuAPIError(RuntimeError):
    """Raised when the Feishu API fails or answers with a non-zero code."""


class FeishuClient:
    """Minimal Bitable records reader.

    Args:
        app_id: Feishu application id.
        app_secret: Feishu application secret.
        timeout: Per-request timeout in seconds.
        session: Optional preconfigured `requests.Session`.
    """

    def __init__(
        self,
        app_id: str,
        app_secret: str,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.app_id = app_id
        self.app_secret = app_secret
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        url = f"{BASE}{path}"
        try:
            r = self.session.request(method, url, timeout=self.timeout, **kwargs)
            r.raise_for_status()
            payload = r.json()
        except (requests.RequestException, ValueError) as e:
            log.error("Feishu request failed: %s %s: %s", method, path, e)
            raise FeishuAPIError(f"Feishu request failed: {method} {path}") from e

        if payload.get("code", 0) != 0:
            log.error("Feishu error code=%s msg=%s", payload.get("code"), payload.get("msg"))
            raise FeishuAPIError(
                f"Feishu API error {payload.get('code')}: {payload.get('msg')}"
            )
        return payload

    def app_access_token(self) -> str:
        """Return a fresh app access token."""
        payload = self._request(
            "POST",
            TOKEN_PATH,
            json={"app_id": self.app_id, "app_secret": self.app_secret},
        )
        token = payload.get("app_access_token")
        if not token:
            raise FeishuAPIError("Feishu token response carried no app_access_token")
        return token

    def list_records(
        self,
        bitable_app_id: str,
        table_id: str,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> list[dict[str, Any]]:
        """Return every record of a Bitable table, following pagination.

        Args:
            bitable_app_id: Bitable app token.
            table_id: Table id.
            page_size: Records per page (Feishu caps this at 500).

        Returns:
            List of raw record dicts (``fields``, ``id``, ``record_id``).
        """
        token = self.app_access_token()
        path = RECORDS_PATH.format(app_id=bitable_app_id, table_id=table_id)
        headers = {"Authorization": f"Bearer {token}"}

        items: list[dict[str, Any]] = []
        page_token = ""
        while True:
            params: dict[str, Any] = {"page_size": page_size}
            if page_token:
                params["page_token"] = page_token
            data = self._request("GET", path, headers=headers, params=params).get("data") or {}
            items.extend(data.get("items") or [])
            if not data.get("has_more"):
                break
            page_token = data.get("page_token") or data.get("next_page_token") or ""
            if not page_token:
                log.warning("has_more without page_token for table %s; stopping", table_id)
                break

        log.info("Fetched %d records from table %s", len(items), table_id)
        return items


def fetch_dataset(settings: Settings, endpoint: str, client: FeishuClient | None = None) -> list[dict[str, Any]]:
    """Fetch all records behind a dataset endpoint.

    Raises:
        RuntimeError: if the endpoint has no table configured.
        FeishuAPIError: on upstream failure.
    """
    table = settings.table(endpoint)
    client = client or FeishuClient(
        settings.feishu_app_id,
        settings.feishu_app_secret,
        timeout=settings.request_timeout,
    )
    log.info("Fetching dataset %s", endpoint)
    return client.list_records(table.app_id, table.table_id)
