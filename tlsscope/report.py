"""Text reports for packets delivered by the capture path."""

from __future__ import annotations

from .crypto import DecryptionError, decrypt_tls_data
from .keys import KeyStore
from .records import (
    RECORD_HEADER_SIZE,
    PacketInfo,
    TlsRecordHeader,
    format_decrypted_data,
    format_record_info,
)

RAW_DUMP_LIMIT = 64
_BYTES_PER_LINE = 16
SEPARATOR = "-" * 40


def format_raw_payload(payload: bytes) -> str:
    """Hex-dump the first 64 bytes of a payload, sixteen bytes to a line."""
    head = payload[:RAW_DUMP_LIMIT]
    return "\n".join(
        " ".join(f"{byte:02x}" for byte in head[offset:offset + _BYTES_PER_LINE])
        for offset in range(0, len(head), _BYTES_PER_LINE)
    )


def _raw_section(payload: bytes) -> list[str]:
    return ["Raw TLS data (first 64 bytes):", format_raw_payload(payload)]


def format_packet(packet: PacketInfo, key_store: KeyStore | None = None) -> str:
    """Describe a captured packet, decrypting it when keys for its flow are known.

    Without a key store the raw payload is dumped.
    """
    flow = packet.flow
    lines = [
        f"Captured TLS packet: {flow.src_ip}:{flow.src_port} -> "
        f"{flow.dst_ip}:{flow.dst_port}, len={packet.payload_len}"
    ]
    payload = packet.payload
    if packet.payload_len >= RECORD_HEADER_SIZE:
        header = TlsRecordHeader(
            record_type=payload[0],
            version=int.from_bytes(payload[1:3], "big"),
            length=int.from_bytes(payload[3:5], "big"),
        )
        lines.append(format_record_info(header))

    if key_store is None:
        lines.extend(_raw_section(payload))
    else:
        key_info = key_store.lookup(flow)
        if key_info is None:
            lines.append("No SSL keys found for this flow")
            lines.extend(_raw_section(payload))
        else:
            try:
                plaintext = decrypt_tls_data(packet, key_info)
            except DecryptionError:
                lines.append("Failed to decrypt packet")
            else:
                lines.append(f"Decrypted data ({len(plaintext)} bytes):")
                lines.append(format_decrypted_data(plaintext))

    lines.append(SEPARATOR)
    return "\n".join(lines)