"""
Single bounded download of an organization's logo.
10 second timeout, 5 MB cap, image (or generic binary) content types only, no private hosts.
"""
from __future__ import annotations

import ipaddress
import logging
import os
from urllib.parse import urlparse

import requests

from assets.errors import SourceFetchError

logger = logging.getLogger(__name__)

LOGO_FETCH_TIMEOUT_S = float(os.environ.get("LOGO_FETCH_TIMEOUT_S", "10"))
LOGO_FETCH_MAX_BYTES = int(os.environ.get("LOGO_FETCH_MAX_BYTES", str(5 * 1024 * 1024)))
USER_AGENT = "PunchcardAssets/1.0"

ALLOWED_CONTENT_TYPES = ("image/png", "image/jpeg", "image/jpg", "image/webp", "image/gif")
# Object stores serve untyped uploads with these; decoding decides.
GENERIC_CONTENT_TYPES = ("application/octet-stream", "binary/octet-stream")


def _normalize_content_type(raw: str | None) -> str:
    if not raw:
        return ""
    return raw.split(";", 1)[0].strip().lower()


def _is_private_host(hostname: str) -> bool:
    host = hostname.strip("[]").lower()
    if host == "localhost" or host.endswith(".localhost"):
        return True
    try:
        addr = ipaddress.ip_address(host)
    except ValueError:
        return False
    return addr.is_private or addr.is_loopback or addr.is_link_local or addr.is_reserved


def check_logo_url(url: str) -> None:
    parsed = urlparse(url or "")
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise SourceFetchError(f"Unsupported logo URL: {url!r}")
    if _is_private_host(parsed.hostname):
        raise SourceFetchError(f"Private/internal hosts are not allowed: {url}")


def fetch_logo(
    url: str,
    *,
    timeout_s: float | None = None,
    max_bytes: int | None = None,
) -> bytes:
    """Download the logo once. Raises SourceFetchError on any failure."""
    timeout_s = LOGO_FETCH_TIMEOUT_S if timeout_s is None else timeout_s
    max_bytes = LOGO_FETCH_MAX_BYTES if max_bytes is None else max_bytes
    check_logo_url(url)
    try:
        with requests.get(
            url,
            stream=True,
            timeout=timeout_s,
            headers={"User-Agent": USER_AGENT},
        ) as resp:
            if resp.status_code >= 400:
                raise SourceFetchError(f"Failed to fetch logo: HTTP {resp.status_code}")
            content_type = _normalize_content_type(resp.headers.get("Content-Type"))
            if content_type not in ALLOWED_CONTENT_TYPES + GENERIC_CONTENT_TYPES:
                raise SourceFetchError(f"Blocked content-type {content_type or 'unknown'} from {url}")
            declared = resp.headers.get("Content-Length")
            if declared and declared.isdigit() and int(declared) > max_bytes:
                raise SourceFetchError(f"Logo too large ({declared} bytes, max {max_bytes})")
            chunks: list[bytes] = []
            received = 0
            for chunk in resp.iter_content(chunk_size=8192):
                if not chunk:
                    continue
                received += len(chunk)
                if received > max_bytes:
                    raise SourceFetchError(f"Logo exceeds size limit ({max_bytes} bytes)")
                chunks.append(chunk)
    except requests.Timeout as e:
        raise SourceFetchError(f"Logo download timed out: {url}") from e
    except requests.RequestException as e:
        raise SourceFetchError(f"Error downloading logo from {url}: {e}") from e
    data = b"".join(chunks)
    if not data:
        raise SourceFetchError(f"Logo at {url} is empty")
    logger.debug("Fetched logo %s (%d bytes)", url, len(data))
    return data
