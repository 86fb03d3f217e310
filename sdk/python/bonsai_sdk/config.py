"""
Bonsai SDK - Configuration

Connection settings are read from the environment. Frontend toolchains only
expose variables carrying their own prefix, so each setting is probed under
a fixed list of prefixes before falling back to the bare name.
"""

import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from loguru import logger

from .errors import ConfigurationError

API_KEY_HEADER = "x-api-key"
VERSION_HEADER = "x-risc0-version"

API_URL_ENVVAR = "BONSAI_API_URL"
API_KEY_ENVVAR = "BONSAI_API_KEY"
# Milliseconds, or "none" for no timeout
TIMEOUT_ENVVAR = "BONSAI_TIMEOUT_MS"

DEFAULT_TIMEOUT_MS = 30000

# Probed in order; "" is the unprefixed name.
ENV_PREFIXES = (
    "REACT_APP_",
    "NEXT_PUBLIC_",
    "GATSBY_",
    "VUE_APP_",
    "VITE_",
    "PUBLIC_",
    "NUXT_ENV_",
    "",
)

# Unsigned only; a negative value falls back to the default
_LEADING_INT = re.compile(r"\s*\+?(\d+)")


def lookup_env(name: str, environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Return the value of the first prefixed variant of ``name`` that is set."""
    if environ is None:
        environ = os.environ
    for prefix in ENV_PREFIXES:
        value = environ.get(prefix + name)
        if value is not None:
            return value
    return None


def resolve_timeout_ms(environ: Optional[Mapping[str, str]] = None) -> Optional[int]:
    """
    Resolve the request timeout from ``BONSAI_TIMEOUT_MS``.

    Returns:
        Timeout in milliseconds, or None for no timeout
    """
    if environ is None:
        environ = os.environ
    raw = environ.get(TIMEOUT_ENVVAR)
    if raw == "none":
        return None
    if not raw:
        return DEFAULT_TIMEOUT_MS

    match = _LEADING_INT.match(raw)
    if not match:
        logger.warning(
            "Invalid {}={!r}, using default of {} ms", TIMEOUT_ENVVAR, raw, DEFAULT_TIMEOUT_MS
        )
        return DEFAULT_TIMEOUT_MS
    timeout_ms = int(match.group(1))
    # 0 disables the timeout
    return timeout_ms if timeout_ms > 0 else None


def normalize_url(url: str) -> str:
    """Strip a single trailing slash."""
    return url[:-1] if url.endswith("/") else url


@dataclass(frozen=True)
class ClientConfig:
    """Immutable connection settings for a Bonsai client."""

    url: str
    api_key: str
    version: str
    timeout_ms: Optional[int] = DEFAULT_TIMEOUT_MS

    @classmethod
    def from_parts(
        cls,
        url: str,
        api_key: str,
        version: str,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ClientConfig":
        """Build from explicit values; the timeout still comes from the environment."""
        return cls(
            url=normalize_url(url),
            api_key=api_key,
            version=version,
            timeout_ms=resolve_timeout_ms(environ),
        )

    @classmethod
    def from_env(
        cls, version: str, environ: Optional[Mapping[str, str]] = None
    ) -> "ClientConfig":
        """Build from ``BONSAI_API_URL`` / ``BONSAI_API_KEY`` and their prefixed variants."""
        url = lookup_env(API_URL_ENVVAR, environ)
        if url is None:
            raise ConfigurationError("Missing API URL")
        api_key = lookup_env(API_KEY_ENVVAR, environ)
        if api_key is None:
            raise ConfigurationError("Missing API Key")
        return cls.from_parts(url, api_key, version, environ)

    @property
    def timeout(self) -> Optional[float]:
        """Timeout in seconds, as httpx expects it."""
        if self.timeout_ms is None:
            return None
        return self.timeout_ms / 1000.0

    @property
    def headers(self) -> dict:
        return {API_KEY_HEADER: self.api_key, VERSION_HEADER: self.version}

    def __repr__(self) -> str:
        return (
            f"ClientConfig(url={self.url!r}, version={self.version!r}, "
            f"timeout_ms={self.timeout_ms})"
        )
