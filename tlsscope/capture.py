"""Recognition of TLS traffic in raw Ethernet frames, with per-flow state."""

from __future__ import annotations

import time
from dataclasses import dataclass
from ipaddress import IPv4Address

from .records import (
    IPPROTO_TCP,
    MAX_FLOWS,
    MAX_PACKET_SIZE,
    RECORD_HEADER_SIZE,
    TLS_VERSION_1_2,
    TLS_VERSION_1_3,
    FlowKey,
    PacketInfo,
    RecordType,
)

ETH_P_IP = 0x0800
ETH_HEADER_SIZE = 14
MIN_HEADER_SIZE = 20
MAX_HEADER_SIZE = 60
TLS_PORTS = frozenset({443, 8443})

_MIN_FRAME_SIZE = ETH_HEADER_SIZE + MIN_HEADER_SIZE + MIN_HEADER_SIZE


@dataclass
class FlowState:
    """What is known about one observed flow."""

    client_seq: int = 0
    server_seq: int = 0
    tls_established: bool = False
    key_extracted: bool = False
    last_seen: int = 0


class FlowTable:
    """A bounded table of flow states keyed by flow."""

    def __init__(self, max_entries: int = MAX_FLOWS) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._states: dict[FlowKey, FlowState] = {}

    def observe(self, flow: FlowKey, seq: int, timestamp: int) -> FlowState | None:
        """Record that ``flow`` was seen; return its state, or None if the table is full."""
        state = self._states.get(flow)
        if state is None:
            if len(self._states) >= self.max_entries:
                return None
            state = FlowState(client_seq=seq)
            self._states[flow] = state
        state.last_seen = timestamp
        return state

    def get(self, flow: FlowKey) -> FlowState | None:
        """Return the state of ``flow`` if it is tracked."""
        return self._states.get(flow)

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, flow: object) -> bool:
        return flow in self._states

    def __iter__(self):
        return iter(self._states)


def is_tls_port(port: int) -> bool:
    """Whether ``port`` is one of the ports watched for TLS."""
    return port in TLS_PORTS


def _looks_like_tls(payload: bytes) -> bool:
    if len(payload) < RECORD_HEADER_SIZE:
        return False
    if not RecordType.CHANGE_CIPHER_SPEC <= payload[0] <= RecordType.APPLICATION_DATA:
        return False
    version = int.from_bytes(payload[1:3], "big")
    return version in (TLS_VERSION_1_2, TLS_VERSION_1_3)


def capture_frame(
    frame: bytes, flows: FlowTable, timestamp: int | None = None
) -> PacketInfo | None:
    """Inspect an Ethernet frame; return a captured packet if it carries a TLS record.

    Every TCP segment on a TLS port updates ``flows``, whether or not its
    payload holds a TLS record.
    """
    if timestamp is None:
        timestamp = time.monotonic_ns()
    if len(frame) < _MIN_FRAME_SIZE:
        return None
    if int.from_bytes(frame[12:14], "big") != ETH_P_IP:
        return None

    ip_start = ETH_HEADER_SIZE
    if frame[ip_start + 9] != IPPROTO_TCP:
        return None
    ip_header_len = (frame[ip_start] & 0x0F) * 4
    if not MIN_HEADER_SIZE <= ip_header_len <= MAX_HEADER_SIZE:
        return None

    tcp_start = ip_start + ip_header_len
    if tcp_start + MIN_HEADER_SIZE > len(frame):
        return None
    tcp_header_len = (frame[tcp_start + 12] >> 4) * 4
    if not MIN_HEADER_SIZE <= tcp_header_len <= MAX_HEADER_SIZE:
        return None

    src_port = int.from_bytes(frame[tcp_start:tcp_start + 2], "big")
    dst_port = int.from_bytes(frame[tcp_start + 2:tcp_start + 4], "big")
    if not (is_tls_port(src_port) or is_tls_port(dst_port)):
        return None

    flow = FlowKey(
        src_ip=IPv4Address(bytes(frame[ip_start + 12:ip_start + 16])),
        dst_ip=IPv4Address(bytes(frame[ip_start + 16:ip_start + 20])),
        src_port=src_port,
        dst_port=dst_port,
        protocol=IPPROTO_TCP,
    )
    seq_num = int.from_bytes(frame[tcp_start + 4:tcp_start + 8], "big")
    ack_num = int.from_bytes(frame[tcp_start + 8:tcp_start + 12], "big")

    if flows.observe(flow, seq_num, timestamp) is None:
        return None

    payload_start = tcp_start + tcp_header_len
    if payload_start >= len(frame):
        return None
    payload = bytes(frame[payload_start:])
    if not _looks_like_tls(payload):
        return None

    return PacketInfo(
        flow=flow,
        seq_num=seq_num,
        ack_num=ack_num,
        payload=payload[:MAX_PACKET_SIZE],
        timestamp=timestamp,
    )