"""Credential loading and session verification."""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from .api import DriveClient
from .config import config
from .exceptions import AuthError, RemoteAPIError

logger = logging.getLogger(__name__)

TOKEN_KEYS = ("access_token", "token")
DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive"]


def load_access_token(credentials_path: Optional[Path] = None) -> str:
    """Load an access token.

    ``DRIVESYNC_ACCESS_TOKEN`` takes precedence. Otherwise the credential file
    must be a JSON object: either a service account key, which is exchanged
    for a token scoped to Drive, or an object carrying the token under
    ``access_token`` or ``token``.

    Args:
        credentials_path: Credential file (uses config if not provided)

    Returns:
        The access token

    Raises:
        AuthError: If no usable token can be found
    """
    if config.access_token:
        logger.debug("Using access token from DRIVESYNC_ACCESS_TOKEN")
        return config.access_token

    path = Path(credentials_path or config.credentials_file)
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise AuthError(f"Unable to read credentials file {path}: {e}") from e
    except ValueError as e:
        raise AuthError(f"Credentials file {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise AuthError(f"Credentials file {path} must contain a JSON object")

    for key in TOKEN_KEYS:
        token = data.get(key)
        if isinstance(token, str) and token.strip():
            return token.strip()

    if data.get("type") == "service_account":
        return _exchange_service_account_key(data, path)
    raise AuthError(f"No access token found in credentials file {path}")


def establish_session(client: DriveClient) -> dict[str, Any]:
    """Verify that the client holds a working session.

    Args:
        client: API client to check

    Returns:
        The authenticated user's information

    Raises:
        AuthError: If the remote store rejects the session or cannot be reached
    """
    try:
        about = client.get_about()
    except RemoteAPIError as e:
        raise AuthError(f"Unable to establish remote session: {e}") from e
    user = about.get("user") or {}
    logger.debug("Authenticated as %s", user.get("emailAddress", "unknown user"))
    return user


def _exchange_service_account_key(info: dict[str, Any], path: Path) -> str:
    """Trade a service account key for a short-lived access token."""
    try:
        credentials = service_account.Credentials.from_service_account_info(
            info, scopes=DRIVE_SCOPES
        )
        credentials.refresh(Request())
    except (ValueError, GoogleAuthError) as e:
        raise AuthError(f"Unable to authorize service account from {path}: {e}") from e

    if not credentials.token:
        raise AuthError(f"Service account in {path} did not yield an access token")
    logger.debug("Authorized service account %s", credentials.service_account_email)
    return credentials.token
