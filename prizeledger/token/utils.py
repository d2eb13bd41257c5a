import os
import logging
import requests
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Ensure environment variables from .env are loaded when this module is imported.
load_dotenv()


def _base_url() -> str:
    fqdn = os.environ.get("TOKEN_API_BASE_FQDN")
    if not fqdn:
        raise RuntimeError("Environment variable 'TOKEN_API_BASE_FQDN' is not set")
    return "https://" + fqdn


def open_session() -> requests.Session:
    """Open a requests session to the token service.

    Returns
    -------
    requests.Session
        A session whose connectivity to the service has been verified.

    Raises
    ------
    RuntimeError
        If ``TOKEN_API_BASE_FQDN`` is not set or the service health check
        fails. Any underlying exception is re-raised as a ``RuntimeError``
        with context.
    """
    url = _base_url() + "/api/v1/health"

    session = requests.Session()
    try:
        response = session.get(url)
        response.raise_for_status()
        logger.debug("Token service reachable")
        return session
    except Exception as e:
        logger.critical(f"Error occurred while starting token session: {e}")
        raise RuntimeError(f"Failed to establish token session: {e}") from e


def get_jwt_token(session: requests.Session) -> str:
    """Obtain a JWT access token using the configured service credentials.

    Parameters
    ----------
    session : requests.Session
        A live session for the token service.

    Returns
    -------
    str
        The JWT access token string.

    Raises
    ------
    RuntimeError
        If required environment variables are not set.
    requests.HTTPError
        If the login request fails.
    KeyError, ValueError
        If the response payload does not include an ``"access"`` field or is malformed.
    """
    username = os.environ.get("TOKEN_API_USERNAME")
    password = os.environ.get("TOKEN_API_PASSWORD")
    if not username or not password:
        raise RuntimeError(
            "Environment variables 'TOKEN_API_USERNAME' and 'TOKEN_API_PASSWORD' must be set"
        )
    # Never log raw credentials
    logger.debug("Attempting JWT login with configured token service account")

    url = _base_url() + "/api/v1/auth/jwt-token"
    response = session.post(url, json={"username": username, "password": password})
    response.raise_for_status()

    # Avoid logging headers/body/response as they may contain sensitive data
    logger.debug("JWT token response received (content redacted)")

    return response.json()["access"]
