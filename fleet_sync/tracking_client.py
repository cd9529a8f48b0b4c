"""
Client for the legacy GPS tracking portal.

The portal has no API authentication; it uses a PHP session cookie obtained by
posting the login form:
1. GET main.php to receive a PHPSESSID cookie
2. POST main.php with base64(username) and base64(md5_hex(password))
3. GET ajax_listInfo.php with the session cookie to read vehicle tuples
"""

import re
import json
import base64
import hashlib
import logging
from typing import Any, List, Optional
import requests
from shared.config import Settings

logger = logging.getLogger(__name__)

SESSION_COOKIE_REGEX = re.compile(r"PHPSESSID=([^;]+)")
LOGIN_FORM_MARKER = 'id="LoginFormID"'
LOGGED_IN_MARKER = "map.php"

DEFAULT_TIMEOUT = 30.0


class TrackingAuthenticationError(Exception):
    """Raised when the tracking portal rejects the session or answers unexpectedly."""
    pass


def encode_username(username: str) -> str:
    """Base64 of the lower-cased username, as the login form expects."""
    return base64.b64encode(username.lower().encode("utf-8")).decode("ascii")


def encode_password(password: str) -> str:
    """Base64 of the hex MD5 digest of the password."""
    md5_hex = hashlib.md5(password.encode("utf-8")).hexdigest()
    return base64.b64encode(md5_hex.encode("ascii")).decode("ascii")


def _extract_session_id(set_cookie: Optional[str]) -> Optional[str]:
    if not set_cookie:
        return None
    match = SESSION_COOKIE_REGEX.search(set_cookie)
    return match.group(1) if match else None


class TrackingClient:
    """Session-cookie client for the tracking portal."""

    def __init__(
        self,
        settings: Settings,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT
    ):
        self.settings = settings
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def login_url(self) -> str:
        return f"{self.settings.fleet_base_url}/main.php"

    @property
    def data_url(self) -> str:
        return f"{self.settings.fleet_base_url}/ajax_listInfo.php"

    def login(self) -> str:
        """
        Log in and return the session cookie string.

        Returns:
            Cookie header value, e.g. "PHPSESSID=abc123"

        Raises:
            ConfigurationError: If credentials are not configured
            TrackingAuthenticationError: If the portal refuses the login
        """
        self.settings.require("fleet_username", "fleet_password")

        initial_response = self.session.get(self.login_url, timeout=self.timeout)
        set_cookie = initial_response.headers.get("set-cookie")
        if not set_cookie:
            raise TrackingAuthenticationError("Failed to get initial session cookie")

        session_id = _extract_session_id(set_cookie)
        if not session_id:
            raise TrackingAuthenticationError("Failed to parse session cookie")

        session_cookie = f"PHPSESSID={session_id}"

        login_response = self.session.post(
            self.login_url,
            data={
                "entered_login": encode_username(self.settings.fleet_username),
                "entered_password": encode_password(self.settings.fleet_password),
            },
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "Cookie": session_cookie,
            },
            allow_redirects=False,
            timeout=self.timeout,
        )

        # The portal may rotate the session id on login
        refreshed_id = _extract_session_id(login_response.headers.get("set-cookie"))
        final_cookie = f"PHPSESSID={refreshed_id}" if refreshed_id else session_cookie

        body = login_response.text or ""
        if LOGIN_FORM_MARKER in body and LOGGED_IN_MARKER not in body:
            raise TrackingAuthenticationError("Fleet login failed - invalid credentials")

        logger.info("[fleet-sync] Logged in to tracking portal")
        return final_cookie

    def fetch_vehicles(self, session_cookie: str) -> List[Any]:
        """
        Fetch the raw vehicle tuples for all groups.

        Args:
            session_cookie: Cookie returned by login()

        Returns:
            List of positional vehicle records

        Raises:
            TrackingAuthenticationError: If the session expired or the payload is not a JSON list
        """
        response = self.session.get(
            self.data_url,
            params={"group": "-1"},
            headers={
                "Accept": "application/json",
                "Cookie": session_cookie,
            },
            timeout=self.timeout,
        )

        text = (response.text or "").lstrip()
        if text.startswith("<!DOCTYPE") or text.startswith("<html"):
            raise TrackingAuthenticationError("Session expired - got HTML instead of JSON")

        try:
            payload = json.loads(text)
        except ValueError:
            raise TrackingAuthenticationError("Invalid response from fleet API")

        if not isinstance(payload, list):
            raise TrackingAuthenticationError("Invalid response from fleet API")

        return payload
