# eipsec

Building blocks for a small IPsec stack, in pure Python with no third-party
dependencies.

## Modules

- `eipsec.types`: status and audit codes (`Status`, `Audit`), IP protocol
  numbers (`IpProtocol`), the `IpsecError` exception (carrying a `status`),
  and codecs for the fixed parts of IPv4, TCP and UDP headers (`IpHeader`,
  `TcpHeader`, `UdpHeader`, each with `from_bytes` and `to_bytes`).
  Decoding too short a buffer raises `IpsecError` with
  `Status.DATA_SIZE_ERROR`.
- `eipsec.debug`: `IpsecLog`, which writes error, debug, message, audit,
  test and trace lines in a fixed column layout. Each kind is switched on or
  off through `Category` flags; by default error, message, audit, test and
  tables output is on and debug and trace are off. Output goes to the given
  stream, or to standard output.
- `eipsec.util`: address conversion (`inet_aton`, which raises `ValueError`
  on a bad address, `inet_addr`, which returns `0xFFFFFFFF` instead,
  `inet_ntoa`, `ip4_addr`), byte-order helpers (`htons`, `ntohs`, `htonl`,
  `ntohl`), `addr_maskcmp`, the Internet checksum `ip_checksum`, hex dumps
  (`format_dump`, `dump_buffer`), one-line header summaries
  (`format_ip_header`, `print_ip`), and a 32-packet anti-replay window
  (`check_replay_window` and `ReplayWindow`).
- `eipsec.sa`: security policy and security association records (`SpdEntry`,
  `SadEntry`, built with `make_spd_entry` and `make_sad_entry`, which accept
  dotted address strings), with `Policy`, `Mode`, `EncryptionAlgorithm` and
  `AuthAlgorithm`. `SpdEntry.matches` tells whether a packet, given as an
  `IpHeader` or as raw bytes, falls under a policy; a zero protocol or port
  matches anything.
- `eipsec.headers`: AH and ESP header codecs (`AhHeader`, `EspHeader`), and
  `packet_spi`, which reads the SPI of an AH or ESP packet.
- `eipsec.ipsecdev`: `IpsecDevice`, which sits between an IP layer and a
  physical device. Inbound AH and ESP packets go to an IPsec processor; other
  traffic is routed by policy (apply, bypass or discard). Packets are
  `Packet` buffers; refused outbound packets raise `NetError`.
- `eipsec.dumpdev`: `DumpDevice`, a simulated adapter that replays a recorded
  sequence of Ethernet frames (`DumpedPacket`, `Direction`), falling back to
  a sample ESP frame, and dumps everything it receives and sends
  (`format_packet`).

## Installing

```
pip install .
```

## Examples

Addresses:

```python
from eipsec.util import inet_addr, inet_ntoa

addr = inet_addr("192.168.1.3")
assert inet_ntoa(addr) == "192.168.1.3"
```

Replay protection:

```python
from eipsec.types import Audit
from eipsec.util import ReplayWindow

window = ReplayWindow()
assert window.update(1) is Audit.SUCCESS
assert window.update(1) is Audit.SEQ_MISMATCH
```

Routing an outbound packet by policy:

```python
from eipsec.debug import Category, IpsecLog
from eipsec.ipsecdev import IpsecDevice, Packet
from eipsec.sa import Policy, make_spd_entry
from eipsec.types import IpHeader, IpProtocol
from eipsec.util import inet_addr

bypass = make_spd_entry("0.0.0.0", "0.0.0.0", "0.0.0.0", "0.0.0.0",
                        0, 0, 0, Policy.BYPASS)
sent = []
device = IpsecDevice(
    mapped_output=lambda packet, dest: sent.append(dest) or "sent",
    mapped_link_output=lambda packet: None,
    ip_input=lambda packet, dev: None,
    inbound_lookup=lambda data: bypass,
    outbound_lookup=lambda data: bypass,
    log=IpsecLog(categories=Category(0)),
)
header = IpHeader(total_length=20, protocol=IpProtocol.UDP,
                  src=inet_addr("192.168.1.3"), dest=inet_addr("192.168.1.5"))
assert device.output(Packet(header.to_bytes()), "192.168.1.5") == "sent"
```

## What this package does not do

- It performs no AH or ESP protection itself: there is no encryption,
  decryption or HMAC computation. `IpsecDevice` hands that work to the
  `processor` object it is given.
- It keeps no policy or association databases. Policy lookups are callables
  passed to `IpsecDevice`; `SpdEntry.matches` is the building block for
  writing them.
- It opens no sockets and talks to no real network hardware. `DumpDevice`
  only replays frames and writes dumps, and ARP handling is left to an
  optional collaborator object.
- There is no command-line program.

## Running the tests

```
pip install .[test]
pytest
```