"""Tests for rcode.network.tailscale."""

from __future__ import annotations

import json
import socket
import subprocess
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from rcode.net import is_cgnat_ip
from rcode.network.tailscale import (
    apply_host_pattern,
    local_tailscale_ip,
    session_via_tailscale,
    strip_tailscale_suffix,
    tailscale_hostname,
)


def _addr(family: int, address: str) -> SimpleNamespace:
    return SimpleNamespace(family=family, address=address)


def _completed(stdout: str, returncode: int = 0) -> MagicMock:
    result = MagicMock()
    result.stdout = stdout
    result.returncode = returncode
    return result


class TestCgnatRange:
    @pytest.mark.parametrize(
        "ip", ["100.64.0.0", "100.127.255.255", "100.100.1.2"]
    )
    def test_inside(self, ip: str) -> None:
        assert is_cgnat_ip(ip)

    @pytest.mark.parametrize(
        "ip",
        ["100.63.255.255", "100.128.0.0", "", "nope", "192.168.1.1", "fd7a::1"],
    )
    def test_outside(self, ip: str) -> None:
        assert not is_cgnat_ip(ip)

    @pytest.mark.parametrize(
        "ip, inside",
        [("::ffff:100.64.0.1", True), ("::ffff:192.168.1.1", False)],
    )
    def test_ipv4_mapped(self, ip: str, inside: bool) -> None:
        assert is_cgnat_ip(ip) is inside


class TestLocalTailscaleIp:
    @patch("rcode.network.tailscale.psutil.net_if_addrs")
    def test_tailscale0(self, mock_addrs: MagicMock) -> None:
        mock_addrs.return_value = {
            "eth0": [_addr(socket.AF_INET, "192.168.1.5")],
            "tailscale0": [
                _addr(socket.AF_INET6, "fd7a:115c:a1e0::1"),
                _addr(socket.AF_INET, "100.101.102.103"),
            ],
        }
        assert local_tailscale_ip() == "100.101.102.103"

    @patch("rcode.network.tailscale.psutil.net_if_addrs")
    def test_utun_prefix(self, mock_addrs: MagicMock) -> None:
        mock_addrs.return_value = {
            "utun3": [_addr(socket.AF_INET, "100.88.1.1")],
        }
        assert local_tailscale_ip() == "100.88.1.1"

    @patch("rcode.network.tailscale.psutil.net_if_addrs")
    def test_cgnat_on_other_interface_ignored(
        self, mock_addrs: MagicMock
    ) -> None:
        mock_addrs.return_value = {
            "eth0": [_addr(socket.AF_INET, "100.64.0.1")],
        }
        assert local_tailscale_ip() == ""

    @patch("rcode.network.tailscale.psutil.net_if_addrs")
    def test_non_cgnat_on_tailscale_interface_ignored(
        self, mock_addrs: MagicMock
    ) -> None:
        mock_addrs.return_value = {
            "tailscale0": [_addr(socket.AF_INET, "10.0.0.1")],
        }
        assert local_tailscale_ip() == ""

    @patch("rcode.network.tailscale.psutil.net_if_addrs")
    def test_enumeration_failure(self, mock_addrs: MagicMock) -> None:
        mock_addrs.side_effect = OSError("denied")
        assert local_tailscale_ip() == ""


class TestSessionViaTailscale:
    def test_cgnat_client(self) -> None:
        assert session_via_tailscale("100.64.0.9", "", "")

    def test_tty_and_interface(self) -> None:
        assert session_via_tailscale("192.168.1.3", "100.64.0.1", "/dev/pts/1")

    def test_tty_without_interface(self) -> None:
        assert not session_via_tailscale("192.168.1.3", "", "/dev/pts/1")

    def test_interface_without_tty(self) -> None:
        assert not session_via_tailscale("192.168.1.3", "100.64.0.1", "")


class TestTailscaleHostname:
    @patch("rcode.network.tailscale.subprocess.run")
    def test_hostname(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _completed(
            json.dumps(
                {"Self": {"HostName": "ws-01", "DNSName": "ws-01.tail.ts.net."}}
            )
        )
        assert tailscale_hostname(1.0) == "ws-01"
        args, kwargs = mock_run.call_args
        assert args[0] == ["tailscale", "status", "--json"]
        assert kwargs["timeout"] == 1.0

    @patch("rcode.network.tailscale.subprocess.run")
    def test_dns_name_fallback(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _completed(
            json.dumps({"Self": {"HostName": "", "DNSName": "ws-01.tail.ts.net."}})
        )
        assert tailscale_hostname() == "ws-01.tail.ts.net."

    @patch("rcode.network.tailscale.subprocess.run")
    def test_timeout(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = subprocess.TimeoutExpired(["tailscale"], 2.0)
        assert tailscale_hostname() == ""

    @patch("rcode.network.tailscale.subprocess.run")
    def test_missing_binary(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = FileNotFoundError("tailscale")
        assert tailscale_hostname() == ""

    @patch("rcode.network.tailscale.subprocess.run")
    def test_non_zero_exit(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _completed("", returncode=1)
        assert tailscale_hostname() == ""

    @patch("rcode.network.tailscale.subprocess.run")
    def test_malformed_json(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _completed("{not json")
        assert tailscale_hostname() == ""

    @patch("rcode.network.tailscale.subprocess.run")
    def test_missing_self(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _completed(json.dumps({"Peer": {}}))
        assert tailscale_hostname() == ""


class TestHostPattern:
    def test_default_pattern(self) -> None:
        assert apply_host_pattern("ws-01") == "ws01tail"

    def test_plain_placeholder(self) -> None:
        assert apply_host_pattern("ws-01", "{hostname}tail") == "ws-01tail"

    def test_compact_placeholder(self) -> None:
        assert apply_host_pattern("ws-01", "{hostname-}tail") == "ws01tail"

    def test_prefix(self) -> None:
        assert apply_host_pattern("ws-01", "remote-{hostname}") == "remote-ws-01"

    def test_suffix_stripped_first(self) -> None:
        assert apply_host_pattern("ws-01.tail75a81.ts.net.", "{hostname}") == "ws-01"

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("ws-01.tail75a81.ts.net.", "ws-01"),
            ("ws-01.tail75a81.ts.net", "ws-01"),
            ("ws-01.ts.net", "ws-01"),
            ("WS-01.Tail.TS.NET", "WS-01"),
            ("ws-01", "ws-01"),
            ("ws-01.example.com", "ws-01.example.com"),
        ],
    )
    def test_strip_suffix(self, name: str, expected: str) -> None:
        assert strip_tailscale_suffix(name) == expected
