"""Pseudonymous device identity for unauthenticated reviewers."""

import hashlib
import hmac
from typing import Iterable, Optional

from fastapi import Request
from slowapi.util import get_remote_address

from app.core.config import ConfigurationError, settings


class DeviceHasher:
    """Salted one-way hash of a device fingerprint.

    The salt is a server-side secret loaded once at startup. Rotating it makes
    historical hashes unmatchable, which is accepted.
    """

    def __init__(self, salt: Optional[str]):
        if not salt:
            raise ConfigurationError(
                "DEVICE_HASH_SALT is required for secure device hashing"
            )
        self._key = salt.encode("utf-8")

    def hash(self, raw_device_id: str) -> str:
        return hmac.new(self._key, raw_device_id.encode("utf-8"), hashlib.sha256).hexdigest()


def get_client_ip(request: Request, trusted_proxies: Optional[Iterable[str]] = None) -> str:
    """Client address, honouring X-Forwarded-For only when the peer is a trusted proxy.

    Hops are read right to left and the first address that is not itself a
    trusted proxy wins, so entries prepended by the client are ignored.
    """
    peer = get_remote_address(request)
    trusted = set(settings.TRUSTED_PROXIES if trusted_proxies is None else trusted_proxies)
    if peer not in trusted:
        return peer

    forwarded_for = request.headers.get("X-Forwarded-For", "")
    hops = [hop.strip() for hop in forwarded_for.split(",") if hop.strip()]
    for hop in reversed(hops):
        if hop not in trusted:
            return hop
    return peer


def device_fingerprint(request: Request) -> str:
    """Opaque raw device id: user agent, resolved client IP and accept-language.

    Client-supplied device ids such as X-Device-Id are ignored.
    """
    user_agent = request.headers.get("user-agent", "")
    accept_language = request.headers.get("accept-language", "")
    return f"{user_agent}|{get_client_ip(request)}|{accept_language}"
