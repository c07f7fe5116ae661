"""Security Policy and Security Association entries.

Addresses use the form of ``IpHeader.src``: the value ``inet_addr``
returns. SPIs and ports are plain host integers.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum

from eipsec.types import (
    MAX_AUTHKEY_LEN,
    MAX_ENCKEY_LEN,
    IpHeader,
    IpProtocol,
    IpsecError,
    Status,
)
from eipsec.util import addr_maskcmp, inet_aton

MAX_SAD_ENTRIES = 10
MAX_SPD_ENTRIES = 10
NR_NETIFS = 1
DEFAULT_PATH_MTU = 1450

_PORTS = struct.Struct("!HH")


class Policy(IntEnum):
    """What to do with a packet that an SPD entry matches."""

    APPLY = 0
    BYPASS = 1
    DISCARD = 2


class Mode(IntEnum):
    """IPsec processing mode."""

    TUNNEL = 1
    TRANSPORT = 2


class EncryptionAlgorithm(IntEnum):
    """Encryption algorithm of an ESP association."""

    NONE = 0
    DES = 1
    TDES = 2
    IDEA = 3


class AuthAlgorithm(IntEnum):
    """Authentication algorithm of an AH or ESP association."""

    NONE = 0
    HMAC_MD5 = 1
    HMAC_SHA1 = 2


def _address(value) -> int:
    if isinstance(value, str):
        return inet_aton(value)
    return int(value) & 0xFFFFFFFF


@dataclass
class SadEntry:
    """One Security Association."""

    dest: int = 0
    dest_mask: int = 0
    spi: int = 0
    protocol: int = 0
    mode: Mode = Mode.TUNNEL
    sequence_number: int = 0
    replay_win: int = 0
    lifetime: int = 0
    path_mtu: int = DEFAULT_PATH_MTU
    enc_alg: EncryptionAlgorithm = EncryptionAlgorithm.NONE
    enc_key: bytes = b""
    auth_alg: AuthAlgorithm = AuthAlgorithm.NONE
    auth_key: bytes = b""


def _ports(header: IpHeader, raw: bytes | None) -> tuple[int, int]:
    if raw is None or header.protocol not in (IpProtocol.TCP, IpProtocol.UDP):
        return 0, 0
    offset = header.header_length()
    if len(raw) < offset + _PORTS.size:
        return 0, 0
    return _PORTS.unpack_from(raw, offset)


@dataclass
class SpdEntry:
    """One Security Policy; zero protocol or ports match anything."""

    src: int = 0
    src_mask: int = 0
    dest: int = 0
    dest_mask: int = 0
    protocol: int = 0
    src_port: int = 0
    dest_port: int = 0
    policy: Policy = Policy.BYPASS
    sa: SadEntry | None = None

    def matches(self, header, src_port=None, dest_port=None):
        """Tell whether a packet falls under this policy.

        ``header`` is an ``IpHeader`` or the raw packet. Ports not given are
        read from a raw TCP or UDP packet, and are 0 otherwise.
        """
        raw = None
        if not isinstance(header, IpHeader):
            raw = bytes(header)
            header = IpHeader.from_bytes(raw)
        if src_port is None or dest_port is None:
            found_src, found_dest = _ports(header, raw)
            if src_port is None:
                src_port = found_src
            if dest_port is None:
                dest_port = found_dest
        return (
            addr_maskcmp(header.src, self.src, self.src_mask)
            and addr_maskcmp(header.dest, self.dest, self.dest_mask)
            and (self.protocol == 0 or self.protocol == header.protocol)
            and (self.src_port == 0 or self.src_port == src_port)
            and (self.dest_port == 0 or self.dest_port == dest_port)
        )


def make_sad_entry(dest, dest_mask, spi, protocol, mode, enc_alg, enc_key,
                   auth_alg, auth_key):
    """Build a configured SA; addresses may be dotted strings."""
    enc_key = bytes(enc_key)
    auth_key = bytes(auth_key)
    if len(enc_key) > MAX_ENCKEY_LEN:
        raise IpsecError(
            Status.BAD_KEY,
            f"encryption key of {len(enc_key)} bytes exceeds {MAX_ENCKEY_LEN}",
        )
    if len(auth_key) > MAX_AUTHKEY_LEN:
        raise IpsecError(
            Status.BAD_KEY,
            f"authentication key of {len(auth_key)} bytes exceeds {MAX_AUTHKEY_LEN}",
        )
    return SadEntry(
        dest=_address(dest),
        dest_mask=_address(dest_mask),
        spi=int(spi) & 0xFFFFFFFF,
        protocol=int(protocol),
        mode=Mode(mode),
        enc_alg=EncryptionAlgorithm(enc_alg),
        enc_key=enc_key,
        auth_alg=AuthAlgorithm(auth_alg),
        auth_key=auth_key,
    )


def make_spd_entry(src, src_mask, dest, dest_mask, protocol, src_port,
                   dest_port, policy, sa=None):
    """Build a configured policy; addresses may be dotted strings."""
    return SpdEntry(
        src=_address(src),
        src_mask=_address(src_mask),
        dest=_address(dest),
        dest_mask=_address(dest_mask),
        protocol=int(protocol),
        src_port=int(src_port) & 0xFFFF,
        dest_port=int(dest_port) & 0xFFFF,
        policy=Policy(policy),
        sa=sa,
    )