# tlsscope

tlsscope looks at TCP traffic on the HTTPS ports (443 and 8443), picks out
Ethernet frames whose payload starts with a TLS record, and describes them:
the flow, the record type, the protocol version and the record length. Given
session key material for a flow, its library can derive traffic keys and
decrypt TLS application data protected with AES-128-GCM.

## Installation

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## Command line

`tlsscope-mvp` reads frames from a raw packet socket and prints a report for
every frame on port 443 or 8443 whose payload starts with a TLS record.
It needs Linux (an `AF_PACKET` socket) and root privileges; without root it
prints an error and exits with status 1.

```
sudo tlsscope-mvp -i eth0
sudo tlsscope-mvp -i wlan0 -f "tcp port 443"
```

Options:

- `-i <interface>` — interface to read from (default `any`, which listens on
  all interfaces)
- `-f <filter>` — ports to count and report, written as `tcp port N`, or
  several such terms joined by `or` (default
  `tcp port 443 or tcp port 8443`); any other expression is refused
- `-c <count>` — stop after this many frames have passed the filter
  (default: unlimited)
- `-h` — show the help text

Ctrl+C or SIGTERM stops the capture. Each report shows the capture time, the
flow, the frame and payload sizes and the TLS record header. For application
data it also shows a hex preview of up to 32 bytes of the encrypted record.

## Library

### TLS record headers

`tlsscope.records` parses the five-byte TLS record header and formats it for
display. `parse_tls_record` accepts only record types 20 to 23 (Change Cipher
Spec, Alert, Handshake, Application Data) and versions TLS 1.2 (`0x0303`)
and TLS 1.3 (`0x0304`). Anything else raises `TlsRecordError`, as do fewer
than five bytes and a length that runs past the data.

```python
from tlsscope.records import parse_tls_record, format_record_info

header = parse_tls_record(bytes([0x16, 0x03, 0x03, 0x00, 0x02, 0x01, 0x00]))
print(format_record_info(header))
# TLS Record: Type=Handshake, Version=TLS 1.2, Length=2
```

`record_type_name` and `version_name` return the display names, or
`"Unknown"`. `format_flow_info` describes a `FlowKey`.
`format_decrypted_data` shows bytes that begin with `GET `, `POST` or
`HTTP` as text, and any other bytes as a hex and ASCII dump.

The data classes are `FlowKey` (addresses, ports, protocol), `KeyInfo`
(a 48-byte master secret, 32-byte client and server randoms, cipher suite,
timestamp, validity flag), `PacketInfo` (flow, TCP sequence and
acknowledgement numbers, payload of at most 1500 bytes, timestamp) and
`TlsRecordHeader`. `RecordType` enumerates the four record types.

### Key derivation and decryption

`tlsscope.crypto` provides the following:

- `tls12_prf(secret, label, seed, length)` — the TLS 1.2 pseudo-random
  function over HMAC-SHA256.
- `derive_tls12_keys(key_info)` — expands a 64-byte `"key expansion"` key
  block from the master secret and the client and server randoms. It returns
  a 16-byte write key, a 16-byte MAC key and a 4-byte implicit IV.
- `derive_tls13_keys(key_info)` — returns a 16-byte key and a 12-byte IV.
  It uses a simplified HMAC-SHA256 derivation, not the HKDF key schedule of
  TLS 1.3.
- `decrypt_aes_gcm(ciphertext, key, iv)` — decrypts AES-128-GCM. The last 16
  bytes of the ciphertext must be the authentication tag.
- `decrypt_tls_data(packet, key_info)` — decrypts the application-data record
  at the start of a captured payload. The nonce is built from the packet's
  TCP sequence number.

Every failure raises `DecryptionError`. The failures are: keys marked
invalid, a record that is not application data, an unsupported version,
encrypted data too short for the GCM tag, a tag that does not verify, and an
empty or oversized plaintext.

### Capturing frames

`tlsscope.capture.capture_frame(frame, flows, timestamp)` parses an
Ethernet/IPv4/TCP frame. It checks the IP and TCP header lengths and keeps
only traffic with 443 or 8443 on either side (`is_tls_port`). Every matching
segment is recorded in a `FlowTable`. The call returns a `PacketInfo` when
the payload starts with a valid TLS 1.2 or 1.3 record header, and `None`
otherwise. A `FlowTable` holds at most 1024 flows by default. When it is
full, new flows are not tracked and their frames are not captured. Each flow's
`FlowState` keeps the first sequence number seen and the last-seen timestamp.

### Session keys

`tlsscope.keys.KeyStore` maps flows to `KeyInfo` through `store` and
`lookup`. It holds at most 256 entries by default; storing a new flow into a
full store raises `OverflowError`. `lookup` returns `None` for unknown flows
and for keys marked invalid. `simulated_key_info` builds random key material
for trying out the decryption path.

### Reports

`tlsscope.report.format_packet(packet, key_store)` renders a captured packet
as a text report. The report gives the flow, the TLS record header and one
of the following:

- the decrypted content, when the `KeyStore` holds keys for the flow and
  decryption succeeds;
- a failure notice, when those keys do not decrypt the record;
- a hex dump of the first 64 bytes (`format_raw_payload`), when no keys are
  known or no key store is given.

## What tlsscope does not do

- It does not read session keys from running programs. The only key material
  it makes up itself is the random data from `simulated_key_info`; real keys
  must be supplied as `KeyInfo` and put into a `KeyStore` by the caller.
- The `tlsscope-mvp` command does not decrypt anything. For application data
  it prints a fixed placeholder line standing in for decrypted content.
  Decryption is available only through the library
  (`tlsscope.crypto` and `tlsscope.report`).
- It does not capture inside the kernel and does not read or write capture
  files; frames come from a raw socket or are handed in as bytes.
- Only IPv4 over Ethernet and AES-128-GCM are handled.