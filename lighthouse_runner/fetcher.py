import logging

import requests

from lighthouse_runner.config import PREFLIGHT_TIMEOUT, USER_AGENT

logger = logging.getLogger(__name__)


def check_server(base_url: str, timeout: float = PREFLIGHT_TIMEOUT) -> bool:
    """Return True when the app under test answers at ``base_url``."""
    headers = {"User-Agent": USER_AGENT}
    try:
        resp = requests.get(base_url, headers=headers, timeout=timeout, allow_redirects=True)
    except requests.RequestException as exc:
        logger.warning("Could not reach %s (%s). Ensure the frontend is running.", base_url, exc)
        return False
    if resp.status_code >= 500:
        logger.warning("%s answered with HTTP %d.", base_url, resp.status_code)
        return False
    return True
