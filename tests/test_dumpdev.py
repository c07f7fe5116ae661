import io

from eipsec.debug import IpsecLog
from eipsec.dumpdev import (
    ETH_HEADER_SIZE,
    SAMPLE_ESP_FRAME,
    Direction,
    DumpDevice,
    DumpedPacket,
    format_packet,
)
from eipsec.types import IpHeader, IpProtocol


class Recorder:
    def __init__(self):
        self.received = []

    def __call__(self, packet, device):
        self.received.append(packet.data)


class FakeArp:
    def __init__(self, arp_reply=None, resolve=True, ip_reply=None):
        self.arp_reply = arp_reply
        self.resolve = resolve
        self.ip_reply = ip_reply
        self.ip_frames = []
        self.arp_frames = []

    def ip_input(self, frame):
        self.ip_frames.append(frame)
        return self.ip_reply

    def arp_input(self, hwaddr, frame):
        self.arp_frames.append((hwaddr, frame))
        return self.arp_reply

    def output(self, packet, dest):
        return b"\xff" * 14 + packet if self.resolve else None


def ip_frame(body=b"\x45" + bytes(19)):
    return bytes(6) + bytes(6) + b"\x08\x00" + body


def arp_frame():
    return bytes(12) + b"\x08\x06" + bytes(28)


def make_device(**kwargs):
    recorder = Recorder()
    stream = io.StringIO()
    log = IpsecLog(stream=io.StringIO())
    device = DumpDevice(recorder, stream=stream, log=log, **kwargs)
    return device, recorder, stream


def test_format_packet_short():
    assert format_packet("P: ", b"\x01\x02") == (
        "P: Dumping pbuf (total length is 2 bytes)\nP: 00000000: 01 02 \n"
    )


def test_format_packet_empty():
    assert format_packet("P: ", b"") == (
        "P: Dumping pbuf (total length is 0 bytes)\n => nothing to dump\n"
    )


def test_format_packet_none():
    assert format_packet("P: ", None) == "P: Can't dump pbuf ==> data == NULL\n"


def test_format_packet_full_lines():
    text = format_packet("", bytes(range(32)))
    lines = text.splitlines()
    assert len(lines) == 3
    assert lines[2].startswith("00000010:")
    assert not text.endswith(" \n")


def test_input_without_sequence_injects_esp_sample():
    device, recorder, stream = make_device()
    frame = device.input()
    assert frame == SAMPLE_ESP_FRAME
    assert recorder.received == [SAMPLE_ESP_FRAME[ETH_HEADER_SIZE:]]
    header = IpHeader.from_bytes(recorder.received[0])
    assert header.protocol == IpProtocol.ESP
    assert header.total_length == len(recorder.received[0])
    assert "INBOUND" in stream.getvalue()


def test_sequence_cycles_through_inbound_frames():
    first, second = ip_frame(b"\x45" + bytes(19)), ip_frame(b"\x46" + bytes(19))
    seq = [DumpedPacket(Direction.INBOUND, first), DumpedPacket(Direction.INBOUND, second)]
    device, recorder, _ = make_device(sequence=seq)
    fed = [device.input() for _ in range(3)]
    assert fed == [first, second, first]
    assert recorder.received == [f[ETH_HEADER_SIZE:] for f in fed]


def test_outbound_entry_falls_back_to_esp_sample():
    seq = [DumpedPacket(Direction.OUTBOUND, ip_frame())]
    device, _, _ = make_device(sequence=seq)
    assert device.service() == SAMPLE_ESP_FRAME


def test_empty_inbound_frame_reads_nothing():
    device, recorder, _ = make_device(sequence=[DumpedPacket(Direction.INBOUND, b"")])
    assert device.input() is None
    assert recorder.received == []


def test_ip_frame_updates_arp_table():
    arp = FakeArp()
    frame = ip_frame()
    device, recorder, _ = make_device(arp=arp, sequence=[DumpedPacket(Direction.INBOUND, frame)])
    device.input()
    assert arp.ip_frames == [frame]
    assert len(recorder.received) == 1


def test_arp_reply_is_sent_out():
    reply = b"reply-frame"
    arp = FakeArp(arp_reply=reply)
    frame = arp_frame()
    device, recorder, stream = make_device(
        arp=arp, sequence=[DumpedPacket(Direction.INBOUND, frame)])
    device.input()
    assert recorder.received == []
    assert arp.arp_frames == [(device.hwaddr, frame)]
    assert device.sent_bytes == 14 + len(reply)
    assert "OUTBOUND" in stream.getvalue()


def test_unknown_ethertype_is_dropped():
    frame = bytes(12) + b"\x86\xdd" + bytes(40)
    device, recorder, stream = make_device(sequence=[DumpedPacket(Direction.INBOUND, frame)])
    assert device.input() == frame
    assert recorder.received == []
    assert "OUTBOUND" not in stream.getvalue()


def test_output_counts_sent_bytes():
    device, _, stream = make_device(arp=FakeArp())
    sent = device.output(b"abc", None)
    assert sent == b"\xff" * 14 + b"abc"
    assert device.sent_bytes == len(sent)
    assert format_packet(" " * 40 + "OUTBOUND: ", sent) in stream.getvalue()


def test_output_unresolved_sends_nothing():
    device, _, stream = make_device(arp=FakeArp(resolve=False))
    assert device.output(b"abc", None) is None
    assert device.sent_bytes == 0
    assert stream.getvalue() == ""


def test_output_without_arp_sends_packet_as_is():
    device, _, _ = make_device()
    assert device.output(b"hello", None) == b"hello"
    assert device.sent_bytes == 5


def test_link_output_only_logs():
    log_stream = io.StringIO()
    device = DumpDevice(Recorder(), stream=io.StringIO(), log=IpsecLog(stream=log_stream))
    assert device.link_output(b"frame") is None
    assert "just returning ERR_OK" in log_stream.getvalue()
    assert device.sent_bytes == 0


def test_device_identity():
    device, _, _ = make_device()
    assert device.name == "dp"
    assert device.mtu == 1500
    assert len(device.hwaddr) == 6