"""Network device that sits between the IP stack and the physical driver.

Inbound AH and ESP packets go to the IPsec processor. Other inbound traffic
is checked against the inbound policies. Outbound traffic is checked against
the outbound policies, and is then protected, forwarded as-is or dropped.

The collaborators are passed in as callables:

``mapped_output(packet, dest)``
    sends a packet out of the physical device.
``mapped_link_output(packet)``
    sends a frame as-is out of the physical device.
``ip_input(packet, device)``
    hands a packet to the IP layer.
``inbound_lookup(data)`` and ``outbound_lookup(data)``
    return the ``SpdEntry`` that governs the raw packet, or ``None``.
``processor``
    an object with ``inbound(data)``, which returns the decapsulated inner
    packet, and ``outbound(data, tunnel_src, tunnel_dst, spd)``, which returns
    the protected packet. Both raise ``IpsecError`` on failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from eipsec.debug import IpsecLog
from eipsec.sa import Policy
from eipsec.types import (
    IP_HEADER_SIZE,
    Audit,
    IpHeader,
    IpProtocol,
    IpsecError,
    Status,
)
from eipsec.util import inet_addr

IPSEC_MTU = 1500
DEVICE_NAME = "is"
DEVICE_HWADDR = bytes((0xA3, 0xB3, 0xC3, 0xD3, 0xE3, 0xF3))


class NetError(Exception):
    """The device refused to send a packet."""


@dataclass
class Packet:
    """A packet buffer, possibly chained to further buffers."""

    data: bytes
    next: Optional["Packet"] = None
    ref: int = 1

    def __post_init__(self):
        self.data = bytes(self.data)

    @property
    def tot_len(self):
        """Length of this buffer and every buffer chained after it."""
        rest = self.next.tot_len if self.next is not None else 0
        return len(self.data) + rest


class IpsecDevice:
    """IPsec interface wrapped around a physical network device."""

    def __init__(self, mapped_output, mapped_link_output, ip_input,
                 inbound_lookup, outbound_lookup, processor=None, log=None):
        self.mapped_output = mapped_output
        self.mapped_link_output = mapped_link_output
        self.ip_input = ip_input
        self.inbound_lookup = inbound_lookup
        self.outbound_lookup = outbound_lookup
        self.processor = processor
        self.log = log if log is not None else IpsecLog()
        self.name = DEVICE_NAME
        self.mtu = IPSEC_MTU
        self.hwaddr = DEVICE_HWADDR
        self.link_up = True
        self.broadcast = True
        self.tunnel_src = 0
        self.tunnel_dst = 0
        self.log.enter("ipsecdev_init", "")
        self.log.leave("ipsecdev_init", f"retcode = {int(Status.SUCCESS)}")

    def set_tunnel(self, src, dst):
        """Set the tunnel endpoints from dotted addresses."""
        self.tunnel_src = inet_addr(src)
        self.tunnel_dst = inet_addr(dst)

    def service(self):
        """Periodic service hook; this device has nothing pending."""
        self.log.enter("ipsecdev_service", f"netif={self.name}")
        self.log.leave("ipsecdev_service", "void")

    def _size_problem(self, packet: Packet) -> Optional[str]:
        if packet.tot_len > self.mtu:
            return f"Packet to long ({packet.tot_len} > {self.mtu} (IPSEC_MTU))"
        if len(packet.data) < IP_HEADER_SIZE:
            return f"Packet too short for an IP header ({len(packet.data)} bytes)"
        if IpHeader.from_bytes(packet.data).total_length > self.mtu:
            return f"IP header length exceeds {self.mtu} (IPSEC_MTU)"
        if packet.next is not None:
            return "can not handle chained pbuf"
        return None

    def input(self, packet):
        """Take a packet from the physical device.

        Returns what ``ip_input`` returned when the packet was passed up, and
        ``None`` when it was dropped.
        """
        log = self.log
        log.enter("ipsecdev_input", f"p={packet!r}")
        if packet is None or not packet.data:
            log.debug("ipsecdev_input", Status.DATA_SIZE_ERROR,
                      "Packet has no payload. Can't pass it to higher level protocol stacks.")
            log.leave("ipsecdev_input", "dropped")
            return None

        problem = self._size_problem(packet)
        if problem is not None:
            log.debug("ipsecdev_input", Status.DATA_SIZE_ERROR, problem)
            log.leave("ipsecdev_input", "dropped")
            return None

        header = IpHeader.from_bytes(packet.data)
        if header.protocol in (IpProtocol.ESP, IpProtocol.AH):
            result = self._input_ipsec(packet)
        else:
            result = self._input_plain(packet)
        log.leave("ipsecdev_input", f"result = {result!r}")
        return result

    def _input_ipsec(self, packet: Packet):
        log = self.log
        if self.processor is None:
            log.error("ipsecdev_input", Status.NOT_INITIALIZED,
                      "no IPsec processor configured")
            return None
        try:
            inner = self.processor.inbound(packet.data)
        except IpsecError as exc:
            log.error("ipsecdev_input", exc.status,
                      f"error on ipsec_input() processing (retcode = {int(exc.status)})")
            return None
        log.message("ipsecdev_input", "fwd decapsulated IPsec packet to ip_input()")
        return self.ip_input(Packet(inner), self)

    def _input_plain(self, packet: Packet):
        log = self.log
        spd = self.inbound_lookup(packet.data)
        if spd is None:
            log.error("ipsecdev_input", Status.NO_POLICY_FOUND,
                      "no matching SPD policy found")
            return None
        if spd.policy == Policy.APPLY:
            log.audit("ipsecdev_input", Audit.APPLY,
                      "POLICY_APPLY: got non-IPsec packet which should be one")
        elif spd.policy == Policy.DISCARD:
            log.audit("ipsecdev_input", Audit.DISCARD, "POLICY_DISCARD: dropping packet")
        elif spd.policy == Policy.BYPASS:
            log.audit("ipsecdev_input", Audit.BYPASS,
                      "POLICY_BYPASS: forwarding packet to ip_input")
            return self.ip_input(packet, self)
        else:
            log.error("ipsecdev_input", Status.FAILURE, "IPSEC_STATUS_FAILURE: dropping packet")
            log.audit("ipsecdev_input", Audit.FAILURE,
                      "unknown Security Policy: dropping packet")
        return None

    def output(self, packet, dest):
        """Send a packet from the IP layer out of the physical device.

        Returns what ``mapped_output`` returned, or ``None`` when IPsec
        processing of a packet failed. Raises ``NetError`` when the packet
        is refused or its policy drops it.
        """
        log = self.log
        log.enter("ipsecdev_output", f"p={packet!r}, ipaddr={dest!r}")

        problem = self._size_problem(packet)
        if problem is None and packet.ref != 1:
            problem = f"can not handle pbuf->ref != 1 - p->ref == {packet.ref}"
        if problem is not None:
            log.debug("ipsecdev_output", Status.DATA_SIZE_ERROR,
                      f"{problem} on interface '{self.name}'")
            log.leave("ipsecdev_output", "refused")
            raise NetError(problem)

        spd = self.outbound_lookup(packet.data)
        if spd is None:
            log.error("ipsecdev_output", Status.NO_POLICY_FOUND, "no matching SPD policy found")
            log.leave("ipsecdev_output", "refused")
            raise NetError("no matching SPD policy found")

        if spd.policy == Policy.APPLY:
            log.audit("ipsecdev_output", Audit.APPLY, "POLICY_APPLY: processing IPsec packet")
            result = self._output_ipsec(packet, spd)
            log.leave("ipsecdev_output", f"result = {result!r}")
            return result
        if spd.policy == Policy.BYPASS:
            log.audit("ipsecdev_output", Audit.BYPASS,
                      "POLICY_BYPASS: forwarding packet to ip_output")
            result = self.mapped_output(packet, dest)
            log.leave("ipsecdev_output", f"result = {result!r}")
            return result
        if spd.policy == Policy.DISCARD:
            log.audit("ipsecdev_output", Audit.DISCARD, "POLICY_DISCARD: dropping packet")
            reason = "packet discarded by policy"
        else:
            log.error("ipsecdev_output", Status.FAILURE, "POLICY_DISCARD: dropping packet")
            log.audit("ipsecdev_output", Audit.FAILURE,
                      "unknown Security Policy: dropping packet")
            reason = "unknown security policy"
        log.leave("ipsecdev_output", "refused")
        raise NetError(reason)

    def _output_ipsec(self, packet: Packet, spd):
        log = self.log
        if self.processor is None:
            log.error("ipsec_output", Status.NOT_INITIALIZED, "no IPsec processor configured")
            return None
        try:
            protected = self.processor.outbound(
                packet.data, self.tunnel_src, self.tunnel_dst, spd)
        except IpsecError as exc:
            log.error("ipsec_output", exc.status, "error on ipsec_output() processing")
            return None
        log.message("ipsec_output", "fwd IPsec packet to HW mapped device")
        return self.mapped_output(Packet(protected), self.tunnel_dst)

    def link_output(self, packet):
        """Send a frame as-is through the physical device."""
        log = self.log
        log.enter("ipsecdev_netlink_output", f"p={packet!r}")
        log.message("ipsecdev_netlink_output",
                    f"fwd from interface '{self.name}' to real HW linkoutput")
        result = self.mapped_link_output(packet)
        log.leave("ipsecdev_netlink_output", f"retcode = {result!r}")
        return result