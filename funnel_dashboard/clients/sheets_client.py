from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import requests
from requests import Response


logger = logging.getLogger(__name__)

READONLY_SCOPES = ["https://www.googleapis.com/auth/spreadsheets.readonly"]


class SheetsApiError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SheetsResponseError(RuntimeError):
    """The API answered, but not with a `values` list of rows."""


class SheetsClient:
    """Read-only client for the Sheets v4 `values.get` endpoint.

    Authenticates with an API key, or with a service account when a key
    file is given (the session then carries the bearer token).
    """

    def __init__(
        self,
        spreadsheet_id: str,
        api_key: str = "",
        base_url: str = "https://sheets.googleapis.com/v4/spreadsheets",
        timeout: float = 30.0,
        service_account_file: str = "",
        session: requests.Session | None = None,
    ) -> None:
        self.spreadsheet_id = spreadsheet_id.strip()
        self.api_key = api_key.strip()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.service_account_file = service_account_file.strip()
        self._session = session

    def _authorized_session(self) -> requests.Session:
        if self._session is None:
            from google.auth.transport.requests import AuthorizedSession
            from google.oauth2 import service_account

            credentials = service_account.Credentials.from_service_account_file(
                self.service_account_file,
                scopes=READONLY_SCOPES,
            )
            self._session = AuthorizedSession(credentials)
        return self._session

    @staticmethod
    def _headers() -> dict[str, str]:
        return {
            "Accept": "application/json",
            "User-Agent": "funnel-dashboard/0.1",
        }

    def values_url(self, cell_range: str) -> str:
        return (
            f"{self.base_url}/{quote(self.spreadsheet_id, safe='')}"
            f"/values/{quote(cell_range, safe='')}"
        )

    @staticmethod
    def _response_payload(response: Response) -> object:
        try:
            return response.json()
        except ValueError:
            return None

    @classmethod
    def _response_message(cls, response: Response) -> str:
        payload = cls._response_payload(response)
        if isinstance(payload, dict):
            error = payload.get("error")
            if isinstance(error, dict):
                message = error.get("message")
                if isinstance(message, str) and message.strip():
                    return message.strip()
            message = payload.get("message")
            if isinstance(message, str) and message.strip():
                return message.strip()

        text = response.text.strip()
        if not text:
            return response.reason or "No response body."
        if len(text) > 240:
            return text[:237] + "..."
        return text

    def _error_for(self, response: Response, cell_range: str) -> SheetsApiError:
        status = response.status_code
        message = self._response_message(response)
        if status == 403:
            hint = "Access denied. Check that the spreadsheet is shared and the API key is valid."
        elif status == 404:
            tab = cell_range.split("!", 1)[0]
            hint = f"Tab '{tab}' or spreadsheet not found."
        else:
            hint = "Sheets API request failed."
        return SheetsApiError(f"{hint} HTTP {status}: {message}", status_code=status)

    def _get(self, url: str, params: dict[str, str]) -> Response:
        if self.service_account_file:
            session = self._authorized_session()
            return session.get(url, params=params, headers=self._headers(), timeout=self.timeout)
        if self._session is not None:
            return self._session.get(url, params=params, headers=self._headers(), timeout=self.timeout)
        return requests.get(url, params=params, headers=self._headers(), timeout=self.timeout)

    def fetch_values(self, cell_range: str) -> list[list[Any]]:
        url = self.values_url(cell_range)
        params: dict[str, str] = {}
        if self.api_key and not self.service_account_file:
            params["key"] = self.api_key

        logger.info("Fetching sheet range %s", cell_range)
        try:
            response = self._get(url, params)
        except requests.RequestException as exc:
            raise SheetsApiError(f"Sheets API request failed: {exc}") from exc

        if not response.ok:
            raise self._error_for(response, cell_range)

        payload = self._response_payload(response)
        if not isinstance(payload, dict):
            raise SheetsResponseError("Sheets API returned a non-JSON or non-object body.")
        values = payload.get("values")
        if not isinstance(values, list) or not all(isinstance(row, list) for row in values):
            raise SheetsResponseError(
                f"Unexpected Sheets API payload for {cell_range}: 'values' must be a list of rows."
            )
        logger.info("Received %d rows for %s", len(values), cell_range)
        return values
