"""URL normalization shared by the API boundary and the crawl scheduler."""
from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit

DEFAULT_PORTS = {"http": 80, "https": 443}


class InvalidUrlError(ValueError):
    def __init__(self, url: str, reason: str = "not an absolute URL"):
        super().__init__(f"Invalid URL: {url!r} ({reason})")
        self.url = url


def normalize_url(url: str) -> str:
    """Return the canonical string form of an absolute URL.

    Scheme and host are lowercased, a default port is dropped and an empty
    path becomes ``/``. Query and fragment are kept verbatim. Normalizing an
    already normalized URL returns it unchanged.
    """
    if not isinstance(url, str):
        raise InvalidUrlError(repr(url), "not a string")
    raw = url.strip()
    try:
        parts = urlsplit(raw)
        port = parts.port
    except ValueError as e:
        raise InvalidUrlError(raw, str(e)) from e

    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if not scheme or not host:
        raise InvalidUrlError(raw)

    if ":" in host:
        host = f"[{host}]"
    netloc = host
    if parts.username is not None:
        userinfo = parts.username
        if parts.password is not None:
            userinfo += f":{parts.password}"
        netloc = f"{userinfo}@{host}"
    if port is not None and DEFAULT_PORTS.get(scheme) != port:
        netloc += f":{port}"

    path = parts.path or "/"
    return urlunsplit((scheme, netloc, path, parts.query, parts.fragment))


def site_origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"
