"""
HTTP session with connection pooling and CA bundle resolution.

Retries are switched off on purpose: a failed poll simply waits for the next
scheduled tick, and a failed probe for the next view change.
"""

import os

import certifi
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import log

_retry_strategy = Retry(
    total=0,
    connect=0,
    read=0,
    raise_on_status=False,
)


def _get_ca_bundle():
    """Get the CA bundle path. Priority: env var → certifi."""
    env_ca = os.environ.get("REQUESTS_CA_BUNDLE") or os.environ.get("SSL_CERT_FILE")
    if env_ca and os.path.isfile(env_ca):
        return env_ca
    return certifi.where()


def create_session():
    """Create a new requests.Session with connection pooling and SSL."""
    session = requests.Session()
    # Monitoring fans out three requests per tick
    adapter = HTTPAdapter(
        pool_connections=1,
        pool_maxsize=4,
        max_retries=_retry_strategy,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers.update({"Accept": "application/json"})
    session.verify = _get_ca_bundle()
    return session


def reset_session(session):
    """Drop pooled connections to a backend that went away and start fresh."""
    try:
        session.close()
    except Exception as e:
        log.debug("Closing stale HTTP session failed: %s", e)
    return create_session()
