"""Storage of captured TLS key material by flow."""

from __future__ import annotations

import secrets
import time

from .records import MAX_KEYS, FlowKey, KeyInfo

DEFAULT_CIPHER_SUITE = 0x1301


class KeyStore:
    """A bounded mapping from flows to their session key material."""

    def __init__(self, max_entries: int = MAX_KEYS) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._keys: dict[FlowKey, KeyInfo] = {}

    def store(self, flow: FlowKey, key_info: KeyInfo) -> None:
        """Store or replace the keys of ``flow``; raise OverflowError when full."""
        if flow not in self._keys and len(self._keys) >= self.max_entries:
            raise OverflowError("key store is full")
        self._keys[flow] = key_info

    def lookup(self, flow: FlowKey) -> KeyInfo | None:
        """Return the valid keys of ``flow``, or None if there are none."""
        key_info = self._keys.get(flow)
        if key_info is None or not key_info.valid:
            return None
        return key_info

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, flow: object) -> bool:
        return flow in self._keys


def simulated_key_info(cipher_suite: int | None = None) -> KeyInfo:
    """Build random key material standing in for keys read from a live session."""
    suite = DEFAULT_CIPHER_SUITE if cipher_suite is None else cipher_suite & 0xFFFF
    return KeyInfo(
        master_secret=secrets.token_bytes(48),
        client_random=secrets.token_bytes(32),
        server_random=secrets.token_bytes(32),
        cipher_suite=suite,
        timestamp=int(time.time()),
        valid=True,
    )