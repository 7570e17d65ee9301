"""Key derivation and AES-GCM decryption of captured TLS records."""

from __future__ import annotations

import hmac

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .records import (
    MAX_PACKET_SIZE,
    RECORD_HEADER_SIZE,
    TLS_VERSION_1_2,
    TLS_VERSION_1_3,
    KeyInfo,
    PacketInfo,
    RecordType,
    TlsRecordError,
    parse_tls_record,
)

_KEY_EXPANSION = b"key expansion"
_TAG_SIZE = 16


class DecryptionError(Exception):
    """Raised when a TLS record cannot be decrypted."""


def tls12_prf(secret: bytes, label: bytes, seed: bytes, length: int) -> bytes:
    """The TLS 1.2 pseudo-random function over HMAC-SHA256."""
    if length < 0:
        raise ValueError("length must not be negative")
    full_seed = label + seed
    a = hmac.digest(secret, full_seed, "sha256")
    out = bytearray()
    while len(out) < length:
        out += hmac.digest(secret, a + full_seed, "sha256")
        a = hmac.digest(secret, a, "sha256")
    return bytes(out[:length])


def _seed(key_info: KeyInfo) -> bytes:
    return key_info.client_random + key_info.server_random


def derive_tls12_keys(key_info: KeyInfo) -> tuple[bytes, bytes, bytes]:
    """Return the client write key, MAC key and 4-byte implicit IV."""
    key_block = tls12_prf(key_info.master_secret, _KEY_EXPANSION, _seed(key_info), 64)
    return key_block[:16], key_block[16:32], key_block[32:36]


def derive_tls13_keys(key_info: KeyInfo) -> tuple[bytes, bytes]:
    """Return a 16-byte key and 12-byte IV by a simplified HMAC derivation."""
    seed = bytearray(_seed(key_info))
    enc_key = hmac.digest(key_info.master_secret, bytes(seed), "sha256")[:16]
    seed[0] ^= 0xFF
    iv = hmac.digest(key_info.master_secret, bytes(seed), "sha256")[:12]
    return enc_key, iv


def decrypt_aes_gcm(ciphertext: bytes, key: bytes, iv: bytes) -> bytes:
    """Decrypt AES-128-GCM data whose last 16 bytes are the tag."""
    if len(ciphertext) < _TAG_SIZE:
        raise DecryptionError("ciphertext too short for GCM tag")
    if len(key) != 16:
        raise DecryptionError("AES-128-GCM needs a 16-byte key")
    if len(iv) != 12:
        raise DecryptionError("GCM IV must be 12 bytes")
    try:
        return AESGCM(key).decrypt(iv, ciphertext, None)
    except InvalidTag as exc:
        raise DecryptionError("authentication failed") from exc


def decrypt_tls_data(packet: PacketInfo, key_info: KeyInfo) -> bytes:
    """Decrypt the application-data record at the start of a packet payload."""
    if not key_info.valid:
        raise DecryptionError("key information is not valid")
    if packet.payload_len < RECORD_HEADER_SIZE:
        raise DecryptionError("payload shorter than a TLS record header")
    try:
        header = parse_tls_record(packet.payload)
    except TlsRecordError as exc:
        raise DecryptionError(str(exc)) from exc
    if header.record_type != RecordType.APPLICATION_DATA:
        raise DecryptionError("only application data can be decrypted")

    seq_bytes = packet.seq_num.to_bytes(8, "big")
    if header.version == TLS_VERSION_1_2:
        enc_key, _mac_key, implicit_iv = derive_tls12_keys(key_info)
        nonce = implicit_iv + seq_bytes
    elif header.version == TLS_VERSION_1_3:
        enc_key, iv = derive_tls13_keys(key_info)
        padded = bytes(4) + seq_bytes
        nonce = bytes(a ^ b for a, b in zip(iv, padded))
    else:
        raise DecryptionError(f"unsupported TLS version 0x{header.version:04x}")

    available = packet.payload_len - RECORD_HEADER_SIZE
    encrypted_len = min(header.length, available)
    if encrypted_len < _TAG_SIZE:
        raise DecryptionError("encrypted data too short for GCM tag")
    encrypted = packet.payload[RECORD_HEADER_SIZE:RECORD_HEADER_SIZE + encrypted_len]

    plaintext = decrypt_aes_gcm(encrypted, enc_key, nonce)
    if not plaintext or len(plaintext) >= MAX_PACKET_SIZE:
        raise DecryptionError("decrypted data has no usable length")
    return plaintext