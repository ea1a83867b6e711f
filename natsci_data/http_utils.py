"""
HTTP session and URL helpers shared by the Fetcher.
"""

from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from natsci_data import config


def make_session(
    max_retries: int = 0,
    backoff_factor: float = 0.0,
    status_forcelist: tuple = (429, 500, 502, 503, 504),
    user_agent: str = config.USER_AGENT,
) -> requests.Session:
    """Create a requests.Session with a mounted retry adapter.

    Transport-level retries default to zero because the Fetcher applies its
    own bounded retry policy per dataset; raise *max_retries* only for
    callers that want urllib3 to retry underneath.

    Parameters
    ----------
    max_retries : int
        Total urllib3 retry attempts per request.
    backoff_factor : float
        Exponential backoff multiplier for urllib3 retries.
    status_forcelist : tuple
        HTTP status codes that trigger a urllib3 retry.
    user_agent : str
        User-Agent header value.

    Returns
    -------
    requests.Session
    """
    session = requests.Session()
    session.headers.update({"User-Agent": user_agent})

    retry = Retry(
        total=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=list(status_forcelist),
        allowed_methods=["GET"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def url_problem(url) -> str | None:
    """Return why *url* cannot be fetched over HTTP(S), or None if it can."""
    if not isinstance(url, str) or not url.strip():
        return "URL is empty"
    try:
        parsed = urlparse(url.strip())
    except ValueError as exc:
        return f"malformed URL: {exc}"
    if parsed.scheme.lower() not in config.ALLOWED_URL_SCHEMES:
        return f"unsupported protocol {parsed.scheme!r} (expected http or https)"
    if not parsed.netloc:
        return "URL has no host"
    return None
