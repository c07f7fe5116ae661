"""Status codes, protocol numbers and the fixed-size IP, TCP and UDP headers.

Addresses (``IpHeader.src`` and ``IpHeader.dest``) are stored the way the
rest of the package keeps them. That is the 32-bit value of the four address
bytes read in little-endian order, the same form ``inet_addr`` returns. All
other multi-byte header fields are plain host integers, decoded from network
byte order.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum

DES_KEY_LEN = 8
TDES_KEY_LEN = DES_KEY_LEN * 3
MAX_ENCKEY_LEN = TDES_KEY_LEN

AUTH_ICV = 12
AUTH_MD5_KEY_LEN = 16
AUTH_SHA1_KEY_LEN = 20
MAX_AUTHKEY_LEN = AUTH_SHA1_KEY_LEN

MIN_IPHDR_SIZE = 20
SEQ_MAX_WINDOW = 32

IP_HEADER_SIZE = 20
TCP_HEADER_SIZE = 20
UDP_HEADER_SIZE = 8


class Status(IntEnum):
    """Result codes of IPsec processing."""

    SUCCESS = 0
    NOT_IMPLEMENTED = -1
    FAILURE = -2
    DATA_SIZE_ERROR = -3
    NO_SPACE_IN_SPD = -4
    NO_POLICY_FOUND = -5
    NO_SA_FOUND = -6
    BAD_PACKET = -7
    BAD_PROTOCOL = -8
    BAD_KEY = -9
    TTL_EXPIRED = -10
    NOT_INITIALIZED = -100


class Audit(IntEnum):
    """Auditable events."""

    SUCCESS = 0
    NOT_IMPLEMENTED = 1
    FAILURE = 2
    APPLY = 3
    BYPASS = 4
    DISCARD = 5
    SPI_MISMATCH = 6
    SEQ_MISMATCH = 7
    POLICY_MISMATCH = 8


class IpProtocol(IntEnum):
    """IP protocol numbers the stack knows about."""

    ICMP = 0x01
    TCP = 0x06
    UDP = 0x11
    ESP = 0x32
    AH = 0x33


class IpsecError(Exception):
    """An IPsec operation failed with the given status."""

    def __init__(self, status, message):
        super().__init__(message)
        self.status = Status(status)
        self.message = message


def _require(data: bytes, size: int, what: str) -> None:
    if len(data) < size:
        raise IpsecError(
            Status.DATA_SIZE_ERROR,
            f"{what} needs {size} bytes, got {len(data)}",
        )


_IP_FMT = struct.Struct("!BBHHHBBH4s4s")
_TCP_FMT = struct.Struct("!HHIIHHHH")
_UDP_FMT = struct.Struct("!HHHH")


@dataclass
class IpHeader:
    """The fixed 20-byte part of an IPv4 header."""

    version_ihl: int = 0x45
    tos: int = 0
    total_length: int = 0
    ident: int = 0
    frag_offset: int = 0
    ttl: int = 0
    protocol: int = 0
    checksum: int = 0
    src: int = 0
    dest: int = 0

    @classmethod
    def from_bytes(cls, data):
        data = bytes(data)
        _require(data, IP_HEADER_SIZE, "IP header")
        (v_hl, tos, length, ident, offset, ttl, proto, chksum,
         src, dest) = _IP_FMT.unpack_from(data)
        return cls(
            version_ihl=v_hl,
            tos=tos,
            total_length=length,
            ident=ident,
            frag_offset=offset,
            ttl=ttl,
            protocol=proto,
            checksum=chksum,
            src=int.from_bytes(src, "little"),
            dest=int.from_bytes(dest, "little"),
        )

    def to_bytes(self):
        return _IP_FMT.pack(
            self.version_ihl,
            self.tos,
            self.total_length,
            self.ident,
            self.frag_offset,
            self.ttl,
            self.protocol,
            self.checksum,
            self.src.to_bytes(4, "little"),
            self.dest.to_bytes(4, "little"),
        )

    def header_length(self):
        """Length of the header in bytes, taken from the IHL field."""
        return (self.version_ihl & 0x0F) * 4


@dataclass
class TcpHeader:
    """The fixed 20-byte part of a TCP header."""

    src: int = 0
    dest: int = 0
    seqno: int = 0
    ackno: int = 0
    offset_flags: int = 0
    wnd: int = 0
    checksum: int = 0
    urgp: int = 0

    @classmethod
    def from_bytes(cls, data):
        data = bytes(data)
        _require(data, TCP_HEADER_SIZE, "TCP header")
        return cls(*_TCP_FMT.unpack_from(data))

    def to_bytes(self):
        return _TCP_FMT.pack(
            self.src, self.dest, self.seqno, self.ackno,
            self.offset_flags, self.wnd, self.checksum, self.urgp,
        )


@dataclass
class UdpHeader:
    """An 8-byte UDP header."""

    src: int = 0
    dest: int = 0
    length: int = 0
    checksum: int = 0

    @classmethod
    def from_bytes(cls, data):
        data = bytes(data)
        _require(data, UDP_HEADER_SIZE, "UDP header")
        return cls(*_UDP_FMT.unpack_from(data))

    def to_bytes(self):
        return _UDP_FMT.pack(self.src, self.dest, self.length, self.checksum)