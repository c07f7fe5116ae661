import pytest

from eipsec.types import (
    Audit,
    IpHeader,
    IpProtocol,
    IpsecError,
    Status,
    TcpHeader,
    UdpHeader,
)

IP_AH = bytes([
    0x45, 0x00, 0x00, 0x68, 0x79, 0x9C, 0x00, 0x00, 0x40, 0x33, 0x7D, 0x4B,
    0xC0, 0xA8, 0x01, 0x28, 0xC0, 0xA8, 0x01, 0x03,
])

IP_FTP_1 = bytes([
    0x45, 0x00, 0x00, 0x46, 0x8E, 0xF2, 0x40, 0x00, 0x31, 0x06, 0x56, 0xF2,
    0xCC, 0x98, 0xBD, 0x74, 0x93, 0x57, 0x46, 0x69, 0x00, 0x15, 0x11, 0xEF,
    0x38, 0x57, 0xC8, 0x7F, 0xEC, 0x0F, 0x03, 0x14, 0x50, 0x18, 0x16, 0xD0,
    0x76, 0x2A, 0x00, 0x00,
])

IP_RIP = bytes([
    0x45, 0xC0, 0x02, 0x14, 0x00, 0x00, 0x00, 0x00, 0x02, 0x11, 0xDB, 0xC8,
    0x93, 0x57, 0x46, 0xFA, 0xFF, 0xFF, 0xFF, 0xFF, 0x02, 0x08, 0x02, 0x08,
    0x02, 0x00, 0x96, 0x98,
])


def test_ip_header_fields_from_ah_packet():
    header = IpHeader.from_bytes(IP_AH)
    assert header.protocol == IpProtocol.AH
    assert header.total_length == 0x68
    assert header.ttl == 0x40
    assert header.header_length() == 20


def test_ip_header_addresses_keep_byte_order():
    header = IpHeader.from_bytes(IP_AH)
    assert header.src.to_bytes(4, "little") == IP_AH[12:16]
    assert header.dest.to_bytes(4, "little") == IP_AH[16:20]


def test_ip_header_round_trip():
    assert IpHeader.from_bytes(IP_AH).to_bytes() == IP_AH
    assert IpHeader.from_bytes(IP_FTP_1).to_bytes() == IP_FTP_1[:20]


def test_ip_header_accepts_longer_buffer():
    header = IpHeader.from_bytes(bytearray(IP_FTP_1))
    assert header.protocol == IpProtocol.TCP
    assert header.total_length == 0x46


def test_ip_header_too_short():
    with pytest.raises(IpsecError) as info:
        IpHeader.from_bytes(IP_AH[:19])
    assert info.value.status is Status.DATA_SIZE_ERROR


def test_tcp_header_ports_and_round_trip():
    tcp_bytes = IP_FTP_1[20:40]
    tcp = TcpHeader.from_bytes(tcp_bytes)
    assert tcp.src == 0x0015
    assert tcp.dest == 0x11EF
    assert tcp.to_bytes() == tcp_bytes


def test_tcp_header_too_short():
    with pytest.raises(IpsecError) as info:
        TcpHeader.from_bytes(b"\x00" * 10)
    assert info.value.status is Status.DATA_SIZE_ERROR


def test_udp_header_round_trip():
    udp_bytes = IP_RIP[20:28]
    udp = UdpHeader.from_bytes(udp_bytes)
    assert udp.src == 0x0208
    assert udp.dest == 0x0208
    assert udp.length == 0x0200
    assert udp.to_bytes() == udp_bytes


def test_udp_header_too_short():
    with pytest.raises(IpsecError):
        UdpHeader.from_bytes(b"\x01\x02")


def test_ipsec_error_carries_status_and_message():
    err = IpsecError(-9, "weak key")
    assert err.status is Status.BAD_KEY
    assert str(err) == "weak key"
    assert err.message == "weak key"


def test_ipsec_error_rejects_unknown_status():
    with pytest.raises(ValueError):
        IpsecError(-55, "nope")


def test_enum_lookup_by_value():
    assert Status(-100) is Status.NOT_INITIALIZED
    assert Audit(7) is Audit.SEQ_MISMATCH
    assert IpProtocol(0x32) is IpProtocol.ESP