import pytest

from tlsscope.mvp import analyze_tls_packet, format_hex_data, handle_frame, main


def _frame(payload, src_port=51000, dst_port=443, proto=6, ethertype=0x0800):
    eth = bytes(6) + bytes(6) + ethertype.to_bytes(2, "big")
    ip = bytes([0x45, 0]) + (20 + 20 + len(payload)).to_bytes(2, "big")
    ip += bytes(4) + bytes([64, proto]) + bytes(2)
    ip += bytes([10, 0, 0, 1]) + bytes([10, 0, 0, 2])
    tcp = src_port.to_bytes(2, "big") + dst_port.to_bytes(2, "big")
    tcp += (1000).to_bytes(4, "big") + (2000).to_bytes(4, "big")
    tcp += bytes([0x50, 0x18]) + (512).to_bytes(2, "big") + bytes(4)
    return eth + ip + tcp + payload


HANDSHAKE = bytes([22, 3, 3, 0, 4]) + b"\x01\x00\x00\x00"


def test_format_hex_data_layout():
    out = format_hex_data(bytes(range(20)), "P")
    lines = out.splitlines()
    assert lines[0] == "P (20 bytes):"
    assert len(lines) == 3
    assert lines[1].startswith("P0000: 00 01 02")
    assert lines[2].startswith("P0010: ")


def test_format_hex_data_empty():
    assert format_hex_data(b"", "X") == "X (0 bytes):"


def test_analyze_short_data():
    assert analyze_tls_packet(b"\x16\x03") == ""


def test_analyze_handshake():
    out = analyze_tls_packet(HANDSHAKE)
    assert out.startswith("  TLS Record: Type=Handshake (0x16), Version=0x0303, Length=4")
    assert "ENCRYPTED APPLICATION DATA DETECTED" not in out


def test_analyze_application_data_preview_limited():
    record = bytes([23, 3, 3, 0, 40]) + bytes(40)
    out = analyze_tls_packet(record)
    assert "  ** ENCRYPTED APPLICATION DATA DETECTED **" in out
    assert "  Encrypted (32 bytes):" in out
    assert "Simulated decrypted content" in out


def test_analyze_application_data_clamped_to_available():
    record = bytes([23, 3, 4, 0, 40]) + bytes(3)
    out = analyze_tls_packet(record)
    assert "  Encrypted (3 bytes):" in out


def test_analyze_unknown_type():
    out = analyze_tls_packet(bytes([99, 3, 3, 0, 0]))
    assert "Type=Unknown" in out


def test_handle_frame_reports_tls():
    frame = _frame(HANDSHAKE)
    out = handle_frame(frame, 12.5)
    lines = out.splitlines()
    assert "=== TLS Packet Captured ===" in lines
    assert "Time: 12.500000" in lines
    assert "Flow: 10.0.0.1:51000 -> 10.0.0.2:443" in lines
    assert f"Size: {len(frame)} bytes (payload: {len(HANDSHAKE)} bytes)" in lines
    assert lines[-1] == "==========================="


def test_handle_frame_server_side_port():
    out = handle_frame(_frame(HANDSHAKE, src_port=8443, dst_port=40000), 1.0)
    assert "Flow: 10.0.0.1:8443 -> 10.0.0.2:40000" in out


@pytest.mark.parametrize(
    "frame",
    [
        _frame(HANDSHAKE, src_port=80, dst_port=8080),
        _frame(HANDSHAKE, proto=17),
        _frame(HANDSHAKE, ethertype=0x86DD),
        _frame(b"GET / HTTP/1.1\r\n"),
        _frame(b"\x16\x03"),
        _frame(b""),
        b"\x00" * 10,
    ],
)
def test_handle_frame_ignores_non_tls(frame):
    assert handle_frame(frame, 0.0) is None


def test_main_help(capsys):
    assert main(["-h"]) == 0
    assert "Usage:" in capsys.readouterr().out


def test_main_unknown_option(capsys):
    assert main(["-z"]) == 1
    assert "Options:" in capsys.readouterr().out


def test_main_bad_count(capsys):
    assert main(["-c", "many"]) == 1
    assert "Usage:" in capsys.readouterr().out