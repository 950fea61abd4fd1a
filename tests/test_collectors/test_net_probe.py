"""Tests for network interface discovery, status and utilization."""

import errno
import socket
from collections import namedtuple
from unittest.mock import MagicMock, patch

import pytest

from sysgauge.collectors import net
from sysgauge.collectors.net import (
    NetworkProbe,
    SysfsNetworkProbe,
    WindowsNetworkProbe,
    apply_sysfs_status,
    apply_utilization,
    is_port_in_use,
    list_addresses,
    parse_link_speed,
)
from sysgauge.models import LinkSpeed, NetworkInterface, NetworkUtilization
from sysgauge.sampling.network import ByteRate

Addr = namedtuple("Addr", "family address netmask broadcast ptp")
IfStats = namedtuple("IfStats", "isup duplex speed mtu")

AF_LINK = net.psutil.AF_LINK

IF_ADDRS = {
    "lo": [
        Addr(socket.AF_INET, "127.0.0.1", "255.0.0.0", None, None),
        Addr(socket.AF_INET6, "::1", "ffff:ffff:ffff:ffff:ffff:ffff:ffff:ffff", None, None),
    ],
    "eth0": [
        Addr(socket.AF_INET, "192.168.1.20", "255.255.255.0", "192.168.1.255", None),
        Addr(socket.AF_INET6, "fe80::1c2d:3e4f%eth0", "ffff:ffff:ffff:ffff::", None, None),
        Addr(AF_LINK, "8c:16:45:aa:bb:cc", None, None, None),
    ],
    "veth1234": [
        Addr(AF_LINK, "de:ad:be:ef:00:01", None, None, None),
    ],
}


@pytest.fixture
def fake_addresses():
    with patch("sysgauge.collectors.net.psutil.net_if_addrs", return_value=IF_ADDRS):
        yield


class TestListAddresses:
    def test_ipv4_and_ipv6(self, fake_addresses):
        addresses = list_addresses()
        eth0 = addresses["eth0"]
        assert [a.type for a in eth0] == ["ipv4", "ipv6"]
        assert eth0[0].cidr == "192.168.1.20/24"
        assert eth0[0].mac == "8c:16:45:aa:bb:cc"
        assert eth0[1].ip == "fe80::1c2d:3e4f"
        assert eth0[1].cidr == "fe80::1c2d:3e4f/64"
        assert not eth0[0].internal

    def test_loopback_is_internal(self, fake_addresses):
        lo = list_addresses()["lo"]
        assert all(a.internal for a in lo)
        assert lo[1].cidr == "::1/128"
        assert lo[0].mac is None

    def test_link_only_interface_listed(self, fake_addresses):
        assert list_addresses()["veth1234"] == []


class TestParseLinkSpeed:
    @pytest.mark.parametrize(
        "text, bits",
        [
            ("1 Gbps", 1_000_000_000),
            ("100 Mbps", 100_000_000),
            ("2.5 Gbps", 2_500_000_000),
            ("866.7 Mbps", 866_700_000),
        ],
    )
    def test_units(self, text, bits):
        assert parse_link_speed(text) == LinkSpeed(bits=bits, bytes=bits // 8)

    def test_zero_or_unknown(self):
        assert parse_link_speed("0 bps") is None
        assert parse_link_speed("fast") is None
        assert parse_link_speed("10 furlongs") is None
        assert parse_link_speed(None) is None


class TestSysfsStatus:
    def test_carrier_upgrades_physical(self):
        interface = NetworkInterface(name="veth0", physical=False)
        apply_sysfs_status(
            interface,
            {"carrier": "1\n", "operstate": "UP\n", "proto_down": "0\n", "speed": "1000\n"},
        )
        assert interface.physical
        assert interface.status.cable
        assert interface.status.operational == "up"
        assert interface.status.admin
        assert interface.speed == LinkSpeed(bits=1_000_000_000, bytes=125_000_000)

    def test_no_carrier_never_downgrades(self):
        interface = NetworkInterface(name="eth0", physical=True)
        apply_sysfs_status(interface, {"carrier": "0\n", "operstate": "down\n", "speed": "-1\n"})
        assert interface.physical
        assert not interface.status.cable
        assert interface.speed is None

    def test_proto_down(self):
        interface = NetworkInterface(name="eth0")
        apply_sysfs_status(interface, {"proto_down": "1\n"})
        assert not interface.status.admin

    def test_missing_files(self):
        interface = NetworkInterface(name="eth0")
        apply_sysfs_status(interface, {"carrier": None, "operstate": None})
        assert interface.status.operational == "unknown"


class TestUtilization:
    def test_fraction_of_link_speed(self):
        interface = NetworkInterface(name="eth0", speed=LinkSpeed.from_bits(8_000_000))
        apply_utilization(interface, ByteRate(receive=250_000.0, transmit=1_000_000.0))
        assert interface.utilization == NetworkUtilization(receive=0.25, transmit=1.0)

    def test_clamped(self):
        interface = NetworkInterface(name="eth0", speed=LinkSpeed.from_bits(8_000))
        apply_utilization(interface, ByteRate(receive=5_000.0, transmit=0.0))
        assert interface.utilization.receive == 1.0

    def test_omitted_without_speed_or_rate(self):
        interface = NetworkInterface(name="eth0")
        apply_utilization(interface, ByteRate(1.0, 1.0))
        assert interface.utilization is None
        interface.speed = LinkSpeed.from_bits(1000)
        apply_utilization(interface, None)
        assert interface.utilization is None


class TestNetworkProbes:
    @pytest.mark.asyncio
    async def test_sysfs(self, fake_addresses, sysfs):
        root = sysfs({
            "class/net/eth0/carrier": "1\n",
            "class/net/eth0/operstate": "up\n",
            "class/net/eth0/proto_down": "0\n",
            "class/net/eth0/speed": "1000\n",
            "class/net/lo/operstate": "unknown\n",
            "class/net/veth1234/carrier": "0\n",
            "class/net/veth1234/operstate": "down\n",
        })
        probe = SysfsNetworkProbe(sysfs_root=root)
        rates = {"eth0": ByteRate(receive=12_500_000.0, transmit=0.0)}
        interfaces = {i.name: i for i in (await probe.collect(rates)).value}

        assert set(interfaces) == {"lo", "eth0", "veth1234"}
        eth0 = interfaces["eth0"]
        assert eth0.physical
        assert eth0.status.cable
        assert eth0.speed.bytes == 125_000_000
        assert eth0.utilization == NetworkUtilization(receive=0.1, transmit=0.0)
        assert not interfaces["lo"].physical
        assert not interfaces["veth1234"].physical
        assert interfaces["veth1234"].status.operational == "down"

    @pytest.mark.asyncio
    async def test_windows(self, fake_runner, fixture_text):
        addresses = {
            "Ethernet": [
                Addr(socket.AF_INET, "10.0.0.5", "255.255.255.0", None, None),
                Addr(AF_LINK, "8C-16-45-AA-BB-CC", None, None, None),
            ],
            "Wi-Fi": [Addr(AF_LINK, "AA-BB-CC-DD-EE-FF", None, None, None)],
        }
        runner = fake_runner({"powershell": fixture_text("get_net_adapter.txt")})
        with patch("sysgauge.collectors.net.psutil.net_if_addrs", return_value=addresses):
            interfaces = {
                i.name: i
                for i in (await WindowsNetworkProbe(runner=runner).collect()).value
            }

        ethernet = interfaces["Ethernet"]
        assert ethernet.status.operational == "up"
        assert ethernet.status.admin
        assert ethernet.status.cable
        assert ethernet.speed.bits == 1_000_000_000

        wifi = interfaces["Wi-Fi"]
        assert wifi.status.operational == "down"
        assert not wifi.status.admin
        assert wifi.speed is None

        wsl = interfaces["vEthernet (WSL)"]
        assert wsl.addresses == []
        assert not wsl.physical
        assert not wsl.status.cable

    @pytest.mark.asyncio
    async def test_psutil_fallback(self, fake_addresses):
        stats = {
            "eth0": IfStats(isup=True, duplex=2, speed=100, mtu=1500),
            "lo": IfStats(isup=True, duplex=0, speed=0, mtu=65536),
        }
        with patch("sysgauge.collectors.net.psutil.net_if_stats", return_value=stats):
            interfaces = {i.name: i for i in (await NetworkProbe().collect()).value}
        assert interfaces["eth0"].status.operational == "up"
        assert interfaces["eth0"].speed.bits == 100_000_000
        assert interfaces["lo"].speed is None
        assert interfaces["veth1234"].status.operational == "unknown"


class TestIsPortInUse:
    @pytest.mark.asyncio
    async def test_bound_port_in_use(self):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as server:
            server.bind(("127.0.0.1", 0))
            server.listen(1)
            port = server.getsockname()[1]
            assert await is_port_in_use(port, "127.0.0.1")

    @pytest.mark.asyncio
    async def test_free_port(self):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as probe:
            probe.bind(("127.0.0.1", 0))
            port = probe.getsockname()[1]
        assert not await is_port_in_use(port, "127.0.0.1")

    @pytest.mark.asyncio
    async def test_other_errors_are_not_in_use(self):
        sock = MagicMock()
        sock.__enter__.return_value = sock
        sock.bind.side_effect = OSError(errno.EACCES, "Permission denied")
        with patch("sysgauge.collectors.net.socket.socket", return_value=sock):
            assert not await is_port_in_use(80)
