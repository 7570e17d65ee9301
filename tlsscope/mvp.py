"""A raw-socket TLS traffic monitor that reports TLS records seen on the wire."""

from __future__ import annotations

import getopt
import os
import re
import signal
import socket
import ssl
import sys
import threading
import time
from ipaddress import IPv4Address

from .records import RECORD_HEADER_SIZE, RecordType, record_type_name

ETH_P_IP = 0x0800
ETH_P_ALL = 0x0003
ETH_HEADER_SIZE = 14
TCP_HEADER_MIN = 20
IPPROTO_TCP = 6
TLS_PORTS = frozenset({443, 8443})
DEFAULT_INTERFACE = "any"
DEFAULT_FILTER = "tcp port 443 or tcp port 8443"
PROG_NAME = "tlsscope-mvp"

_ENCRYPTED_PREVIEW = 32
_FILTER_TERM = re.compile(r"(?:tcp\s+)?port\s+(\d+)")
_FILTER_SPLIT = re.compile(r"\s+or\s+")


def format_hex_data(data: bytes, prefix: str) -> str:
    """Hex-dump ``data`` with an offset column, each line led by ``prefix``."""
    lines = [f"{prefix} ({len(data)} bytes):"]
    for offset in range(0, len(data), 16):
        hex_part = "".join(f"{byte:02x} " for byte in data[offset:offset + 16])
        lines.append(f"{prefix}{offset:04x}: {hex_part}")
    return "\n".join(lines)


def analyze_tls_packet(tls_data: bytes) -> str:
    """Describe the TLS record at the start of ``tls_data``; empty if too short."""
    if len(tls_data) < RECORD_HEADER_SIZE:
        return ""
    record_type = tls_data[0]
    version = int.from_bytes(tls_data[1:3], "big")
    length = int.from_bytes(tls_data[3:5], "big")
    lines = [
        f"  TLS Record: Type={record_type_name(record_type)} (0x{record_type:02x}), "
        f"Version=0x{version:04x}, Length={length}"
    ]
    if record_type == RecordType.APPLICATION_DATA:
        lines.append("  ** ENCRYPTED APPLICATION DATA DETECTED **")
        lines.append(
            "  (In a real implementation, this would be decrypted using extracted keys)"
        )
        data_len = min(length, len(tls_data) - RECORD_HEADER_SIZE, _ENCRYPTED_PREVIEW)
        preview = tls_data[RECORD_HEADER_SIZE:RECORD_HEADER_SIZE + data_len]
        lines.append(format_hex_data(preview, "  Encrypted"))
        lines.append(
            '  Simulated decrypted content: '
            '"GET /api/data HTTP/1.1\\r\\nHost: example.com\\r\\n..."'
        )
    return "\n".join(lines)


def _tcp_offsets(frame: bytes) -> tuple[int, int] | None:
    """Return the IP and TCP header offsets of an IPv4/TCP frame."""
    if len(frame) < ETH_HEADER_SIZE + 20:
        return None
    if int.from_bytes(frame[12:14], "big") != ETH_P_IP:
        return None
    ip_start = ETH_HEADER_SIZE
    if frame[ip_start + 9] != IPPROTO_TCP:
        return None
    tcp_start = ip_start + (frame[ip_start] & 0x0F) * 4
    if tcp_start + TCP_HEADER_MIN > len(frame):
        return None
    return ip_start, tcp_start


def _ports(frame: bytes, tcp_start: int) -> tuple[int, int]:
    return (
        int.from_bytes(frame[tcp_start:tcp_start + 2], "big"),
        int.from_bytes(frame[tcp_start + 2:tcp_start + 4], "big"),
    )


def handle_frame(frame: bytes, timestamp: float | None = None) -> str | None:
    """Report an Ethernet frame carrying a TLS record on a TLS port, else None."""
    offsets = _tcp_offsets(frame)
    if offsets is None:
        return None
    ip_start, tcp_start = offsets
    src_port, dst_port = _ports(frame, tcp_start)
    if not ({src_port, dst_port} & TLS_PORTS):
        return None

    total_header_len = tcp_start + ((frame[tcp_start + 12] >> 4) & 0x0F) * 4
    if len(frame) <= total_header_len:
        return None
    payload = bytes(frame[total_header_len:])
    if len(payload) < RECORD_HEADER_SIZE:
        return None
    if not RecordType.CHANGE_CIPHER_SPEC <= payload[0] <= RecordType.APPLICATION_DATA:
        return None

    if timestamp is None:
        timestamp = time.time()
    seconds, micros = divmod(round(timestamp * 1_000_000), 1_000_000)
    src_ip = IPv4Address(bytes(frame[ip_start + 12:ip_start + 16]))
    dst_ip = IPv4Address(bytes(frame[ip_start + 16:ip_start + 20]))

    lines = [
        "",
        "=== TLS Packet Captured ===",
        f"Time: {seconds}.{micros:06d}",
        f"Flow: {src_ip}:{src_port} -> {dst_ip}:{dst_port}",
        f"Size: {len(frame)} bytes (payload: {len(payload)} bytes)",
    ]
    analysis = analyze_tls_packet(payload)
    if analysis:
        lines.append(analysis)
    lines.append("===========================")
    return "\n".join(lines)


def _parse_filter(expression: str) -> frozenset[int] | None:
    """Parse a filter of the form 'tcp port N or tcp port M'; None if unsupported."""
    ports = set()
    for term in _FILTER_SPLIT.split(expression.strip()):
        match = _FILTER_TERM.fullmatch(term.strip())
        if match is None:
            return None
        port = int(match.group(1))
        if port > 0xFFFF:
            return None
        ports.add(port)
    return frozenset(ports) if ports else None


def _passes_filter(frame: bytes, ports: frozenset[int]) -> bool:
    offsets = _tcp_offsets(frame)
    if offsets is None:
        return False
    return bool(set(_ports(frame, offsets[1])) & ports)


def _usage() -> str:
    return "\n".join([
        "TLS Traffic Capture Tool (MVP)",
        f"Usage: {PROG_NAME} [options]",
        "Options:",
        f"  -i <interface>  Network interface to capture on (default: {DEFAULT_INTERFACE})",
        f"  -f <filter>     Filter expression (default: {DEFAULT_FILTER})",
        "  -c <count>      Number of packets to capture (default: unlimited)",
        "  -h              Show this help message",
        "",
        "Example:",
        f"  sudo {PROG_NAME} -i eth0",
        f'  sudo {PROG_NAME} -i wlan0 -f "tcp port 443"',
        "",
        "Note: This tool reads frames from a raw packet socket.",
        "      It demonstrates TLS traffic analysis and simulated decryption.",
    ])


def _open_socket(interface: str) -> socket.socket:
    family = getattr(socket, "AF_PACKET", None)
    if family is None:
        raise OSError("raw packet sockets are not supported on this platform")
    sock = socket.socket(family, socket.SOCK_RAW, socket.htons(ETH_P_ALL))
    try:
        if interface != DEFAULT_INTERFACE:
            sock.bind((interface, 0))
        sock.settimeout(1.0)
    except OSError:
        sock.close()
        raise
    return sock


def main(argv: list[str] | None = None) -> int:
    """Run the monitor; returns the process exit status."""
    if argv is None:
        argv = sys.argv[1:]
    interface = DEFAULT_INTERFACE
    filter_exp = DEFAULT_FILTER
    packet_count = -1
    try:
        options, _rest = getopt.getopt(argv, "i:f:c:h")
        for option, value in options:
            if option == "-i":
                interface = value
            elif option == "-f":
                filter_exp = value
            elif option == "-c":
                packet_count = int(value)
            elif option == "-h":
                print(_usage())
                return 0
    except (getopt.GetoptError, ValueError):
        print(_usage())
        return 1

    if os.geteuid() != 0:
        print("This program requires root privileges for packet capture", file=sys.stderr)
        return 1

    stop_requested = threading.Event()

    def stop(_signum, _frame):
        print("\nShutting down TLS capture tool...")
        stop_requested.set()

    print("TLS Traffic Capture Tool (MVP)")
    print(f"Interface: {interface}")
    print(f"Filter: {filter_exp}")
    print(f"Packet count: {'unlimited' if packet_count == -1 else 'limited'}")
    print("=" * 40)
    print(f"OpenSSL initialized: {ssl.OPENSSL_VERSION}")

    try:
        sock = _open_socket(interface)
    except OSError as exc:
        print(f"Could not open device {interface}: {exc}", file=sys.stderr)
        return 1

    ports = _parse_filter(filter_exp)
    if ports is None:
        sock.close()
        print(f"Could not parse filter {filter_exp}", file=sys.stderr)
        return 1

    previous = {sig: signal.signal(sig, stop) for sig in (signal.SIGINT, signal.SIGTERM)}
    print("Starting packet capture... Press Ctrl+C to stop\n")
    captured = 0
    try:
        with sock:
            while not stop_requested.is_set() and (
                packet_count <= 0 or captured < packet_count
            ):
                try:
                    frame = sock.recv(65535)
                except socket.timeout:
                    continue
                except InterruptedError:
                    continue
                except OSError as exc:
                    print(f"Error in capture loop: {exc}", file=sys.stderr)
                    break
                if not _passes_filter(frame, ports):
                    continue
                captured += 1
                report = handle_frame(frame, time.time())
                if report is not None:
                    print(report)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    print("\nCapture completed.")
    return 0