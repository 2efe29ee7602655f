"""Reduce URLs and host strings to the domain used for host identifier attributes."""

from __future__ import annotations

import ipaddress
import re
from urllib.parse import urlsplit

# Schemes a strict URL parse accepts; anything else takes the lenient path.
_URL_SCHEMES = frozenset({"http", "https", "ftp", "file", "jar"})

_SCHEME_PREFIX_RE = re.compile(r"^.*?://")
_SPECIAL_CHARS_RE = re.compile(r"[~`!@#$%^&*()+={}\[\];:?<>,/ ]")


def _is_ip_literal(host: str) -> bool:
    try:
        ipaddress.ip_address(host.strip("[]"))
    except ValueError:
        return False
    return True


def _host_from_url(value: str) -> str | None:
    try:
        parts = urlsplit(value)
        host = parts.hostname
    except ValueError:
        return None
    if parts.scheme.lower() not in _URL_SCHEMES or not host:
        return None
    return host


def base_domain(value: str) -> str:
    """
    Lenient domain extraction for strings that are not well-formed URLs.

    Drops any scheme prefix and path, keeps the last two dot-separated labels
    of the host. Returns "" when the result is not a plausible domain.
    """
    clean = _SCHEME_PREFIX_RE.sub("", value.strip(), count=1)
    host = clean.split("/", 1)[0]
    if _is_ip_literal(host):
        return host
    labels = [label for label in host.split(".") if label]
    base = ".".join(labels[-2:])
    if _SPECIAL_CHARS_RE.search(base):
        return ""
    if "." not in base:
        return ""
    return base.lower()


def extract_domain(value: str | None) -> str:
    """Return the host of a URL, or the base domain of a looser host string."""
    if value is None:
        return ""
    host = _host_from_url(value.strip())
    if host:
        return host
    return base_domain(value)
