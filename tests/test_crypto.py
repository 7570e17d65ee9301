from ipaddress import IPv4Address

import pytest
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from tlsscope.crypto import (
    DecryptionError,
    decrypt_aes_gcm,
    decrypt_tls_data,
    derive_tls12_keys,
    derive_tls13_keys,
    tls12_prf,
)
from tlsscope.records import FlowKey, KeyInfo, PacketInfo

FLOW = FlowKey(IPv4Address("10.0.0.1"), IPv4Address("10.0.0.2"), 51000, 443)


def _key_info(valid=True):
    return KeyInfo(
        master_secret=b"secret" * 8,
        client_random=bytes(range(32)),
        server_random=bytes(range(32, 64)),
        cipher_suite=0x1301,
        valid=valid,
    )


def _record(record_type, version, body):
    return bytes([record_type]) + version.to_bytes(2, "big") + len(body).to_bytes(2, "big") + body


def _tls12_packet(plaintext, seq=7):
    key, _mac, implicit_iv = derive_tls12_keys(_key_info())
    nonce = implicit_iv + seq.to_bytes(8, "big")
    body = AESGCM(key).encrypt(nonce, plaintext, None)
    return PacketInfo(FLOW, seq, 0, _record(23, 0x0303, body))


def test_prf_length_and_prefix_consistency():
    long_out = tls12_prf(b"secret", b"label", b"seed", 100)
    short_out = tls12_prf(b"secret", b"label", b"seed", 20)
    assert len(long_out) == 100
    assert long_out[:20] == short_out


def test_prf_depends_on_label_and_seed():
    base = tls12_prf(b"secret", b"label", b"seed", 32)
    assert base == tls12_prf(b"secret", b"label", b"seed", 32)
    assert base != tls12_prf(b"secret", b"other", b"seed", 32)
    assert base != tls12_prf(b"secret", b"label", b"seeds", 32)


def test_prf_zero_and_negative_length():
    assert tls12_prf(b"secret", b"label", b"seed", 0) == b""
    with pytest.raises(ValueError):
        tls12_prf(b"secret", b"label", b"seed", -1)


def test_derive_tls12_keys_sizes_and_split():
    enc_key, mac_key, iv = derive_tls12_keys(_key_info())
    assert (len(enc_key), len(mac_key), len(iv)) == (16, 16, 4)
    block = tls12_prf(b"secret" * 8, b"key expansion", bytes(range(64)), 36)
    assert enc_key + mac_key + iv == block


def test_derive_tls13_keys_sizes():
    enc_key, iv = derive_tls13_keys(_key_info())
    assert len(enc_key) == 16
    assert len(iv) == 12
    assert enc_key[:12] != iv


def test_decrypt_aes_gcm_round_trip():
    key = bytes(16)
    nonce = bytes(12)
    sealed = AESGCM(key).encrypt(nonce, b"hello", None)
    assert decrypt_aes_gcm(sealed, key, nonce) == b"hello"


def test_decrypt_aes_gcm_errors():
    key = bytes(16)
    nonce = bytes(12)
    sealed = bytearray(AESGCM(key).encrypt(nonce, b"hello", None))
    sealed[0] ^= 1
    with pytest.raises(DecryptionError):
        decrypt_aes_gcm(bytes(sealed), key, nonce)
    with pytest.raises(DecryptionError):
        decrypt_aes_gcm(bytes(15), key, nonce)
    with pytest.raises(DecryptionError):
        decrypt_aes_gcm(bytes(32), bytes(32), nonce)


def test_decrypt_tls12_round_trip():
    packet = _tls12_packet(b"GET / HTTP/1.1\r\n")
    assert decrypt_tls_data(packet, _key_info()) == b"GET / HTTP/1.1\r\n"


def test_decrypt_tls13_round_trip():
    seq = 42
    key, iv = derive_tls13_keys(_key_info())
    nonce = bytes(a ^ b for a, b in zip(iv, bytes(4) + seq.to_bytes(8, "big")))
    body = AESGCM(key).encrypt(nonce, b"payload", None)
    packet = PacketInfo(FLOW, seq, 0, _record(23, 0x0304, body))
    assert decrypt_tls_data(packet, _key_info()) == b"payload"


def test_decrypt_with_wrong_sequence_fails():
    packet = _tls12_packet(b"data", seq=7)
    moved = PacketInfo(FLOW, 8, 0, packet.payload)
    with pytest.raises(DecryptionError):
        decrypt_tls_data(moved, _key_info())


def test_decrypt_rejects_invalid_key_info():
    packet = _tls12_packet(b"data")
    with pytest.raises(DecryptionError):
        decrypt_tls_data(packet, _key_info(valid=False))


def test_decrypt_rejects_non_application_data():
    packet = PacketInfo(FLOW, 1, 0, _record(22, 0x0303, bytes(32)))
    with pytest.raises(DecryptionError):
        decrypt_tls_data(packet, _key_info())


def test_decrypt_rejects_short_and_malformed_payloads():
    with pytest.raises(DecryptionError):
        decrypt_tls_data(PacketInfo(FLOW, 1, 0, b"\x17\x03"), _key_info())
    with pytest.raises(DecryptionError):
        decrypt_tls_data(PacketInfo(FLOW, 1, 0, _record(23, 0x0303, bytes(10))), _key_info())
    with pytest.raises(DecryptionError):
        decrypt_tls_data(PacketInfo(FLOW, 1, 0, _record(23, 0x0301, bytes(32))), _key_info())


def test_decrypt_rejects_empty_plaintext():
    packet = _tls12_packet(b"")
    with pytest.raises(DecryptionError):
        decrypt_tls_data(packet, _key_info())