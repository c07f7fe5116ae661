"""Simulated network adapter that replays recorded frames and dumps all traffic.

Every time the device is serviced it "receives" one Ethernet frame. The frame
comes from a recorded sequence when the current entry is inbound, and is a
sample ESP frame otherwise. The frame is dumped and handed to the upper
layers. Frames sent through the device are dumped instead of going onto a
wire.

The ARP collaborator, if given, is an object with:

``ip_input(frame)``
    updates the ARP table from an IP frame; returns a frame to send or ``None``.
``arp_input(hwaddr, frame)``
    handles an ARP frame; returns a reply or queued frame to send, or ``None``.
``output(packet, dest)``
    resolves the hardware address; returns the frame to send, or ``None``.
"""

from __future__ import annotations

import struct
import sys
from dataclasses import dataclass
from enum import Enum

from eipsec.debug import IpsecLog
from eipsec.ipsecdev import Packet
from eipsec.types import Status

DEVICE_NAME = "dp"
DEVICE_MTU = 1500
DEVICE_HWADDR = bytes((0x02, 0x00, 0x00, 0x00, 0x00, 0x01))

ETH_HEADER_SIZE = 14
ETHTYPE_IP = 0x0800
ETHTYPE_ARP = 0x0806

INBOUND_PREFIX = " " * 40 + "INBOUND : "
OUTBOUND_PREFIX = " " * 40 + "OUTBOUND: "

_ETHTYPE = struct.Struct("!H")

SAMPLE_PING_FRAME = bytes((
    0x02, 0x00, 0x00, 0x00, 0x00, 0x01, 0x02, 0x00, 0x00, 0x00, 0x00, 0x02, 0x08, 0x00, 0x45, 0x00,
    0x00, 0x3C, 0x07, 0xF5, 0x00, 0x00, 0x80, 0x01, 0xAF, 0x78, 0xC0, 0xA8, 0x01, 0x02, 0xC0, 0xA8,
    0x01, 0x01, 0x08, 0x00, 0x40, 0x5C, 0x05, 0x00, 0x08, 0x00, 0x61, 0x62, 0x63, 0x64, 0x65, 0x66,
    0x67, 0x68, 0x69, 0x6A, 0x6B, 0x6C, 0x6D, 0x6E, 0x6F, 0x70, 0x71, 0x72, 0x73, 0x74, 0x75, 0x76,
    0x77, 0x61, 0x62, 0x63, 0x64, 0x65, 0x66, 0x67, 0x68, 0x69,
))
"""A sample ICMP echo request frame."""

SAMPLE_ESP_FRAME = bytes((
    0x02, 0x00, 0x00, 0x00, 0x00, 0x03, 0x02, 0x00, 0x00, 0x00, 0x00, 0x01, 0x08, 0x00, 0x45, 0x00,
    0x00, 0x64, 0x79, 0x28, 0x00, 0x00, 0x40, 0x32, 0x7D, 0xC4, 0xC0, 0xA8, 0x01, 0x28, 0xC0, 0xA8,
    0x01, 0x03, 0x00, 0x00, 0x10, 0x06, 0x00, 0x00, 0x00, 0x01, 0xA7, 0x36, 0xBA, 0x27, 0x8D, 0x39,
    0xC5, 0x09, 0x49, 0x26, 0x53, 0x04, 0x07, 0xC9, 0x4D, 0xBB, 0x16, 0x59, 0x0E, 0x4E, 0x0B, 0x35,
    0xBD, 0x56, 0x0A, 0x84, 0x26, 0x8E, 0x24, 0x8D, 0xB7, 0xAE, 0x8C, 0x59, 0x3F, 0x0C, 0x40, 0x22,
    0x2B, 0x82, 0xA3, 0xC8, 0x3D, 0xDB, 0x0B, 0xA9, 0xD7, 0x81, 0x1A, 0x52, 0xC3, 0x26, 0xDB, 0x19,
    0xCB, 0xFF, 0x67, 0xA3, 0xA0, 0x04, 0x94, 0x8E, 0x36, 0xE4, 0xBF, 0xDF, 0x61, 0xBA, 0xCB, 0xB5,
    0xBA, 0xE9,
))
"""A sample frame holding a single 3DES ESP packet (SPI 0x1006)."""


class Direction(Enum):
    """Direction of a recorded frame."""

    INBOUND = "inbound"
    OUTBOUND = "outbound"


@dataclass(frozen=True)
class DumpedPacket:
    """One recorded Ethernet frame."""

    direction: Direction
    payload: bytes


def format_packet(prefix, data):
    """Hex dump of a packet buffer, 16 bytes to a line.

    ``data`` may be ``None``, in which case a notice is returned instead.
    """
    if data is None:
        return f"{prefix}Can't dump pbuf ==> data == NULL\n"
    data = bytes(data)
    parts = [f"{prefix}Dumping pbuf (total length is {len(data)} bytes)\n"]
    if not data:
        parts.append(" => nothing to dump\n")
        return "".join(parts)
    for count, byte in enumerate(data):
        if count % 16 == 0:
            parts.append(f"{prefix}{count:08x}:")
        parts.append(f" {byte:02X}")
        if count % 16 == 15:
            parts.append("\n")
    if len(data) % 16:
        parts.append(" \n")
    return "".join(parts)


class DumpDevice:
    """Network device that replays recorded frames and dumps what it sends."""

    def __init__(self, upper_input, arp=None, sequence=(), stream=None, log=None):
        self.upper_input = upper_input
        self.arp = arp
        self.sequence = tuple(sequence)
        self.position = 0
        self.stream = stream
        self.log = log if log is not None else IpsecLog()
        self.name = DEVICE_NAME
        self.mtu = DEVICE_MTU
        self.hwaddr = DEVICE_HWADDR
        self.link_up = True
        self.broadcast = True
        self.sent_bytes = 0

    def _write(self, text: str) -> None:
        (self.stream if self.stream is not None else sys.stdout).write(text)

    def _next_frame(self) -> bytes:
        frame = SAMPLE_ESP_FRAME
        if self.sequence:
            entry = self.sequence[self.position]
            if entry.direction is Direction.INBOUND:
                frame = bytes(entry.payload)
            self.position = (self.position + 1) % len(self.sequence)
        return frame

    def service(self):
        """Perform pending work: receive the next frame."""
        return self.input()

    def input(self):
        """Receive one frame and pass it to the upper layers.

        Returns the received frame, or ``None`` when there was nothing to read.
        """
        log = self.log
        log.message("dumpdev_input", "*** start of dumpdev_input() ***")
        frame = self._next_frame()
        if not frame:
            log.debug("dumpdev_input", Status.DATA_SIZE_ERROR, "no data to read")
            return None

        log.message("dumpdev_input", "receiving data:")
        self._write(format_packet(INBOUND_PREFIX, frame))

        ethtype = (
            _ETHTYPE.unpack_from(frame, 12)[0]
            if len(frame) >= ETH_HEADER_SIZE else None
        )
        reply = None
        if ethtype == ETHTYPE_IP:
            if self.arp is not None:
                reply = self.arp.ip_input(frame)
            log.message("dumpdev_input", "passing new packet higher layers")
            self.upper_input(Packet(frame[ETH_HEADER_SIZE:]), self)
        elif ethtype == ETHTYPE_ARP:
            if self.arp is not None:
                reply = self.arp.arp_input(self.hwaddr, frame)
        else:
            log.message("dumpdev_input", "unknown packet -> drop")

        if reply is not None:
            self.output(reply, None)
        log.message("dumpdev_input", "*** end of dumpdev_input() ***")
        return frame

    def output(self, packet, dest):
        """Resolve the hardware address and "send" the frame by dumping it.

        Returns the frame that was sent, or ``None`` if the address could not
        be resolved yet.
        """
        log = self.log
        log.message("dumpdev_output", "*** start of dumpdev_output() ***")
        data = packet.data if isinstance(packet, Packet) else bytes(packet)
        frame = self.arp.output(data, dest) if self.arp is not None else data
        if frame is not None:
            frame = frame.data if isinstance(frame, Packet) else bytes(frame)
            log.message("dumpdev_output", "sending data:")
            self._write(format_packet(OUTBOUND_PREFIX, frame))
            self.sent_bytes += len(frame)
        log.message("dumpdev_output", "*** end of dumpdev_output() ***")
        return frame

    def link_output(self, packet):
        """Low-level output; nothing is written anywhere."""
        self.log.message(
            "dempdev_netlink_output()",
            "simulate writing netlink stuff (not implemented, just returning ERR_OK)",
        )
        return None