"""Address conversion, byte-order helpers, checksums, dumps and replay windows.

Addresses use the form of ``IpHeader.src``: the 32-bit value of the four
address bytes read in little-endian order, which is what ``inet_addr``
returns.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass

from eipsec.types import SEQ_MAX_WINDOW, Audit, IpHeader, IpProtocol

IP_ADDR_NONE = 0xFFFFFFFF
IP_ADDR_LOCALHOST = 0x7F000001

_MASK32 = 0xFFFFFFFF
_DIGITS = frozenset("0123456789")
_HEXDIGITS = frozenset("0123456789abcdefABCDEF")

_PROTOCOL_NAMES = {
    IpProtocol.TCP: " TCP",
    IpProtocol.UDP: " UDP",
    IpProtocol.AH: "  AH",
    IpProtocol.ESP: " ESP",
    IpProtocol.ICMP: "ICMP",
}


def htons(n):
    """Swap the two bytes of a 16-bit value."""
    return ((n & 0xFF) << 8) | ((n & 0xFF00) >> 8)


def ntohs(n):
    """Swap the two bytes of a 16-bit value."""
    return htons(n)


def htonl(n):
    """Reverse the four bytes of a 32-bit value."""
    return (
        ((n & 0xFF) << 24)
        | ((n & 0xFF00) << 8)
        | ((n & 0xFF0000) >> 8)
        | ((n & 0xFF000000) >> 24)
    )


def ntohl(n):
    """Reverse the four bytes of a 32-bit value."""
    return htonl(n)


def ip4_addr(a, b, c, d):
    """Build an address from its four dotted parts."""
    return ((d & 0xFF) << 24) | ((c & 0xFF) << 16) | ((b & 0xFF) << 8) | (a & 0xFF)


def addr_maskcmp(addr1, addr2, mask):
    """True if both addresses are equal under ``mask``."""
    return (addr1 & mask) == (addr2 & mask)


def inet_aton(text):
    """Parse a dotted address; raise ``ValueError`` if it is not valid.

    Each part may be decimal, octal (leading ``0``) or hexadecimal (leading
    ``0x``). Fewer than four parts are accepted: ``a.b.c`` takes ``c`` as 16
    bits, ``a.b`` takes ``b`` as 24 bits and ``a`` alone as 32 bits.
    """

    def char_at(pos: int) -> str:
        return text[pos] if pos < len(text) else ""

    def invalid() -> ValueError:
        return ValueError(f"invalid IPv4 address: {text!r}")

    parts: list[int] = []
    pos = 0
    c = char_at(pos)
    while True:
        if c not in _DIGITS:
            raise invalid()
        val = 0
        base = 10
        if c == "0":
            pos += 1
            c = char_at(pos)
            if c in ("x", "X"):
                base = 16
                pos += 1
                c = char_at(pos)
            else:
                base = 8
        while True:
            if c in _DIGITS:
                val = (val * base + int(c)) & _MASK32
            elif base == 16 and c in _HEXDIGITS:
                val = ((val << 4) | int(c, 16)) & _MASK32
            else:
                break
            pos += 1
            c = char_at(pos)
        if c != ".":
            break
        if len(parts) >= 3:
            raise invalid()
        parts.append(val)
        pos += 1
        c = char_at(pos)

    if c:
        raise invalid()

    count = len(parts) + 1
    if count == 2:
        if val > 0xFFFFFF:
            raise invalid()
        val |= (parts[0] << 24) & _MASK32
    elif count == 3:
        if val > 0xFFFF:
            raise invalid()
        val |= ((parts[0] << 24) | (parts[1] << 16)) & _MASK32
    elif count == 4:
        if val > 0xFF:
            raise invalid()
        val |= ((parts[0] << 24) | (parts[1] << 16) | (parts[2] << 8)) & _MASK32
    return htonl(val)


def inet_addr(text):
    """Parse a dotted address, returning ``IP_ADDR_NONE`` if it is not valid."""
    try:
        return inet_aton(text)
    except ValueError:
        return IP_ADDR_NONE


def inet_ntoa(addr):
    """Format an address in dotted notation."""
    return ".".join(str(b) for b in (addr & _MASK32).to_bytes(4, "little"))


def ip_checksum(data):
    """Internet checksum of ``data``, as the 16-bit value the header carries.

    The result compares directly with ``IpHeader.checksum``; checksumming a
    header that already holds its correct checksum gives 0.
    """
    data = bytes(data)
    acc = 0
    for i in range(0, len(data) - 1, 2):
        acc += (data[i] << 8) | data[i + 1]
    if len(data) % 2:
        acc += data[-1] << 8
    while acc >> 16:
        acc = (acc & 0xFFFF) + (acc >> 16)
    return ~acc & 0xFFFF


def format_ip_header(header):
    """One-line summary of an IP header (an ``IpHeader`` or raw bytes)."""
    if not isinstance(header, IpHeader):
        header = IpHeader.from_bytes(header)
    name = _PROTOCOL_NAMES.get(header.protocol, "????")
    return (
        f"src: {inet_ntoa(header.src):>15} dest: {inet_ntoa(header.dest):>15} "
        f"protocol: {name:>3} size: {header.total_length}"
    )


def print_ip(header, stream=None):
    """Write the summary of an IP header as an indented line."""
    out = stream if stream is not None else sys.stdout
    out.write(f"          {format_ip_header(header)}\n")


def _printable(chunk: bytes) -> str:
    return "".join("." if b < 32 else chr(b) for b in chunk)


def format_dump(prefix, data, offset, length):
    """Hex dump of ``length`` bytes of ``data`` starting at ``offset``.

    Addresses shown are positions within ``data``.
    """
    data = bytes(data)
    if offset < 0 or length < 0 or offset + length > len(data):
        raise ValueError(
            f"cannot dump {length} bytes at offset {offset} of a {len(data)}-byte buffer"
        )
    lines = [
        f"{prefix}Dumping {length} bytes from address 0x{0:08x} "
        f"using an offset of {offset} bytes\n"
    ]
    if length == 0:
        lines.append(f"{prefix} => nothing to dump\n")
        return "".join(lines)

    window = data[offset:offset + length]
    for k, byte in enumerate(window):
        if k % 16 == 0:
            lines.append(f"{prefix}{offset + k:08x}:")
        lines.append(f" {byte:02X}")
        if k % 16 == 15:
            lines.append(" :")
            lines.append(_printable(window[k - 15:k]))
            lines.append("\n")

    rest = length % 16
    if rest:
        lines.append("   " * (16 - rest))
        lines.append(" :")
        lines.append(_printable(window[length - rest:]))
    lines.append("\n")
    return "".join(lines)


def dump_buffer(prefix, data, offset, length, stream=None):
    """Write the hex dump made by ``format_dump``."""
    out = stream if stream is not None else sys.stdout
    out.write(format_dump(prefix, data, offset, length))


def check_replay_window(seq, last_seq, bitmap):
    """Tell whether ``seq`` is acceptable without changing any state."""
    if seq == 0:
        return Audit.SEQ_MISMATCH
    if seq > last_seq:
        if seq - last_seq >= SEQ_MAX_WINDOW:
            return Audit.SEQ_MISMATCH
    else:
        diff = last_seq - seq
        if diff >= SEQ_MAX_WINDOW:
            return Audit.SEQ_MISMATCH
        if bitmap & (1 << diff):
            return Audit.SEQ_MISMATCH
    return Audit.SUCCESS


@dataclass
class ReplayWindow:
    """Anti-replay state: the last sequence number and a bitmap of seen ones."""

    last_seq: int = 0
    bitmap: int = 0

    def check(self, seq):
        """Tell whether ``seq`` would be accepted; state is left alone."""
        return check_replay_window(seq, self.last_seq, self.bitmap)

    def update(self, seq):
        """Accept or reject ``seq`` and record it when accepted."""
        if seq == 0:
            return Audit.SEQ_MISMATCH
        if seq > self.last_seq:
            diff = seq - self.last_seq
            if diff < SEQ_MAX_WINDOW:
                self.bitmap = ((self.bitmap << diff) | 1) & _MASK32
            else:
                self.bitmap = 1
            self.last_seq = seq
            return Audit.SUCCESS
        diff = self.last_seq - seq
        if diff >= SEQ_MAX_WINDOW:
            return Audit.SEQ_MISMATCH
        if self.bitmap & (1 << diff):
            return Audit.SEQ_MISMATCH
        self.bitmap |= 1 << diff
        return Audit.SUCCESS