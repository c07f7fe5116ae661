"""AH and ESP headers, and reading the SPI of an IPsec packet."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from eipsec.types import AUTH_ICV, IpHeader, IpProtocol, IpsecError, Status

AH_HDR_SIZE = 12
ESP_IV_SIZE = 8
ESP_SPI_SIZE = 4
ESP_SEQ_SIZE = 4
ESP_HDR_SIZE = ESP_SPI_SIZE + ESP_SEQ_SIZE

_AH_FMT = struct.Struct("!BBHII")
_ESP_FMT = struct.Struct("!II")
_SPI_FMT = struct.Struct("!I")


def _require(data: bytes, size: int, what: str) -> None:
    if len(data) < size:
        raise IpsecError(
            Status.DATA_SIZE_ERROR, f"{what} needs {size} bytes, got {len(data)}"
        )


@dataclass
class AhHeader:
    """An Authentication Header with its 96-bit ICV."""

    next_header: int = 0
    length: int = 0
    reserved: int = 0
    spi: int = 0
    sequence: int = 0
    icv: bytes = bytes(AUTH_ICV)

    @classmethod
    def from_bytes(cls, data):
        data = bytes(data)
        _require(data, AH_HDR_SIZE + AUTH_ICV, "AH header")
        nexthdr, length, reserved, spi, seq = _AH_FMT.unpack_from(data)
        return cls(nexthdr, length, reserved, spi, seq,
                   data[AH_HDR_SIZE:AH_HDR_SIZE + AUTH_ICV])

    def to_bytes(self):
        icv = bytes(self.icv)
        if len(icv) != AUTH_ICV:
            raise IpsecError(
                Status.DATA_SIZE_ERROR, f"ICV must be {AUTH_ICV} bytes, got {len(icv)}"
            )
        return _AH_FMT.pack(self.next_header, self.length, self.reserved,
                            self.spi, self.sequence) + icv


@dataclass
class EspHeader:
    """The SPI and sequence number that open an ESP packet."""

    spi: int = 0
    sequence: int = 0

    @classmethod
    def from_bytes(cls, data):
        data = bytes(data)
        _require(data, ESP_HDR_SIZE, "ESP header")
        return cls(*_ESP_FMT.unpack_from(data))

    def to_bytes(self):
        return _ESP_FMT.pack(self.spi, self.sequence)


def packet_spi(packet):
    """SPI of an AH or ESP packet that starts with its IP header."""
    packet = bytes(packet)
    header = IpHeader.from_bytes(packet)
    offset = header.header_length()
    if header.protocol == IpProtocol.ESP:
        spi_at = offset
    elif header.protocol == IpProtocol.AH:
        spi_at = offset + 4
    else:
        raise IpsecError(
            Status.BAD_PROTOCOL, f"protocol {header.protocol} carries no SPI"
        )
    _require(packet, spi_at + _SPI_FMT.size, "IPsec packet")
    return _SPI_FMT.unpack_from(packet, spi_at)[0]