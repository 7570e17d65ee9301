"""TLS record, flow and key data types, with parsing and text formatting."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from ipaddress import IPv4Address

MAX_PACKET_SIZE = 1500
MAX_FLOWS = 1024
MAX_KEYS = 256
RECORD_HEADER_SIZE = 5
SSL_PORT = 443
IPPROTO_TCP = 6

TLS_VERSION_1_2 = 0x0303
TLS_VERSION_1_3 = 0x0304

_VERSION_NAMES = {
    TLS_VERSION_1_2: "TLS 1.2",
    TLS_VERSION_1_3: "TLS 1.3",
}

_HTTP_PREFIXES = (b"GET ", b"POST", b"HTTP")


class TlsRecordError(ValueError):
    """Raised when bytes do not hold a valid TLS record header."""


class RecordType(IntEnum):
    """TLS record content types."""

    CHANGE_CIPHER_SPEC = 20
    ALERT = 21
    HANDSHAKE = 22
    APPLICATION_DATA = 23

    @property
    def label(self) -> str:
        return {
            RecordType.CHANGE_CIPHER_SPEC: "Change Cipher Spec",
            RecordType.ALERT: "Alert",
            RecordType.HANDSHAKE: "Handshake",
            RecordType.APPLICATION_DATA: "Application Data",
        }[self]


@dataclass(frozen=True)
class FlowKey:
    """Identifies one direction of a TCP connection."""

    src_ip: IPv4Address
    dst_ip: IPv4Address
    src_port: int
    dst_port: int
    protocol: int = IPPROTO_TCP


@dataclass(frozen=True)
class KeyInfo:
    """Key material captured for a TLS session."""

    master_secret: bytes
    client_random: bytes
    server_random: bytes
    cipher_suite: int = 0
    timestamp: int = 0
    valid: bool = True

    def __post_init__(self) -> None:
        if len(self.master_secret) != 48:
            raise ValueError("master secret must be 48 bytes")
        if len(self.client_random) != 32:
            raise ValueError("client random must be 32 bytes")
        if len(self.server_random) != 32:
            raise ValueError("server random must be 32 bytes")


@dataclass(frozen=True)
class PacketInfo:
    """A captured TCP segment carrying TLS data."""

    flow: FlowKey
    seq_num: int
    ack_num: int
    payload: bytes
    timestamp: int = 0

    def __post_init__(self) -> None:
        if len(self.payload) > MAX_PACKET_SIZE:
            raise ValueError(f"payload exceeds {MAX_PACKET_SIZE} bytes")

    @property
    def payload_len(self) -> int:
        return len(self.payload)


@dataclass(frozen=True)
class TlsRecordHeader:
    """The five-byte header in front of every TLS record."""

    record_type: int
    version: int
    length: int


def parse_tls_record(data: bytes) -> TlsRecordHeader:
    """Parse and validate the TLS record header at the start of ``data``."""
    if len(data) < RECORD_HEADER_SIZE:
        raise TlsRecordError("data shorter than a TLS record header")
    record_type = data[0]
    version = int.from_bytes(data[1:3], "big")
    length = int.from_bytes(data[3:5], "big")
    if not RecordType.CHANGE_CIPHER_SPEC <= record_type <= RecordType.APPLICATION_DATA:
        raise TlsRecordError(f"invalid TLS record type {record_type}")
    if version not in _VERSION_NAMES:
        raise TlsRecordError(f"unsupported TLS version 0x{version:04x}")
    if length > len(data) - RECORD_HEADER_SIZE:
        raise TlsRecordError("TLS record length exceeds available data")
    return TlsRecordHeader(record_type, version, length)


def record_type_name(record_type: int) -> str:
    """Return the human-readable name of a TLS record type."""
    try:
        return RecordType(record_type).label
    except ValueError:
        return "Unknown"


def version_name(version: int) -> str:
    """Return the human-readable name of a TLS protocol version."""
    return _VERSION_NAMES.get(version, "Unknown")


def format_record_info(header: TlsRecordHeader) -> str:
    """Describe a record header on one line."""
    return (
        f"TLS Record: Type={record_type_name(header.record_type)}, "
        f"Version={version_name(header.version)}, Length={header.length}"
    )


def format_decrypted_data(data: bytes) -> str:
    """Render decrypted bytes as HTTP text or as a hex and ASCII dump."""
    if not data:
        return ""
    lines = ["=== DECRYPTED CONTENT ==="]
    if len(data) > 4 and data[:4] in _HTTP_PREFIXES:
        lines.append("HTTP Traffic Detected:")
        lines.append(data.decode("utf-8", errors="replace"))
    else:
        lines.append(f"Raw Data ({len(data)} bytes):")
        for offset in range(0, len(data), 16):
            chunk = data[offset:offset + 16]
            hex_part = "".join(f"{byte:02x} " for byte in chunk).ljust(48)
            text = "".join(chr(byte) if 32 <= byte <= 126 else "." for byte in chunk)
            lines.append(f"{offset:08x}: {hex_part} |{text}|")
    lines.append("=== END DECRYPTED CONTENT ===")
    return "\n".join(lines)


def format_flow_info(flow: FlowKey) -> str:
    """Describe a flow on one line."""
    return (
        f"Flow: {flow.src_ip}:{flow.src_port} -> "
        f"{flow.dst_ip}:{flow.dst_port} (proto={flow.protocol})"
    )