"""Service Center API client.

A small wrapper around the REST API for scripts and integrations (for
example a reception kiosk or a nightly export).  It uses ``requests``
and returns ``(data, error)`` tuples instead of raising, so callers can
report API errors without try/except around every call.

Typical use::

    client = ServiceCenterClient(base_url="http://localhost:8000")
    client.login("staff1", "staff123")
    jobs, error = client.list_job_cards(status="Pending")
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

Result = Tuple[Optional[Any], Optional[Dict[str, Any]]]


class ServiceCenterClient:
    """Client for the service center API.

    Authentication is a bearer token, either passed as ``api_key`` (for
    example the static administrator token) or obtained with
    :meth:`login`.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 15,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Low level HTTP helper
    # ------------------------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> Result:
        """Perform an HTTP request against ``API_PREFIX + path``.

        Returns:
            ``(data, None)`` on success, where ``data`` is the decoded
            JSON body or ``None`` for empty responses, and
            ``(None, {"status_code": ..., "message": ...})`` on failure.
        """
        url = f"{self.base_url}{API_PREFIX}{path}"
        headers: Dict[str, str] = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        try:
            logger.debug("Sending %s request to %s", method, url)
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            if response.content:
                return response.json(), None
            return None, None
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            message = ""
            if exc.response is not None:
                try:
                    err_json = exc.response.json()
                    message = err_json.get("detail") or str(err_json)
                except ValueError:
                    message = exc.response.text
            if not message:
                message = str(exc)
            logger.error("API request failed (%s): %s", status, message)
            return None, {"status_code": status, "message": message}
        except requests.RequestException as exc:
            logger.error("API request failed: %s", exc)
            return None, {"status_code": None, "message": str(exc)}

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    def login(self, username: str, password: str) -> Result:
        """Log in and keep the returned token for later requests."""
        data, error = self._request("POST", "/auth/login", json_body={"username": username, "password": password})
        if data:
            self.api_key = data["access_token"]
        return data, error

    def logout(self) -> Result:
        data, error = self._request("POST", "/auth/logout")
        if not error:
            self.api_key = None
        return data, error

    def me(self) -> Result:
        return self._request("GET", "/auth/me")

    # ------------------------------------------------------------------
    # Job cards
    # ------------------------------------------------------------------
    def list_job_cards(self, **filters: Any) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        """List job cards.  Keyword arguments are passed as query filters."""
        data, error = self._request("GET", "/job-cards/", params=filters)
        return (data or []), error

    def get_job_card(self, job_id: int) -> Result:
        return self._request("GET", f"/job-cards/{job_id}")

    def create_job_card(self, payload: Dict[str, Any]) -> Result:
        return self._request("POST", "/job-cards/", json_body=payload)

    def update_job_status(self, job_id: int, status: str) -> Result:
        return self._request("PATCH", f"/job-cards/{job_id}/status", json_body={"status": status})

    def assign_job(self, job_id: int, bay: Optional[str] = None, technician_id: Optional[int] = None) -> Result:
        payload: Dict[str, Any] = {}
        if bay is not None:
            payload["bay"] = bay
        if technician_id is not None:
            payload["technician_id"] = technician_id
        return self._request("PATCH", f"/job-cards/{job_id}/assignment", json_body=payload)

    def job_history(self, job_id: int) -> Result:
        return self._request("GET", f"/job-cards/{job_id}/history")

    def bay_status(self) -> Result:
        return self._request("GET", "/bays/status")

    # ------------------------------------------------------------------
    # Loyalty
    # ------------------------------------------------------------------
    def find_customers(self, q: str) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        data, error = self._request("GET", "/loyalty/customers", params={"q": q})
        return (data or []), error

    def earn_points(self, customer_id: int, amount: float, job_card_id: Optional[int] = None) -> Result:
        return self._request(
            "POST",
            f"/loyalty/customers/{customer_id}/earn",
            json_body={"amount": amount, "job_card_id": job_card_id},
        )

    def redeem_reward(self, customer_id: int, reward_id: int) -> Result:
        return self._request("POST", f"/loyalty/customers/{customer_id}/redeem", json_body={"reward_id": reward_id})

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------
    def statistics(self) -> Result:
        return self._request("GET", "/statistics/")

    def report_summary(self, date_from: Optional[str] = None, date_to: Optional[str] = None) -> Result:
        return self._request("GET", "/reports/summary", params={"date_from": date_from, "date_to": date_to})
