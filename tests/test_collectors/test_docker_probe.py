"""Tests for docker ps parsing."""

from datetime import datetime, timedelta, timezone

import pytest

from sysgauge.collectors.docker import (
    DockerProbe,
    docker_ps_command,
    parse_container,
    parse_docker_ps,
    parse_port,
    parse_ports,
    parse_size,
)
from sysgauge.models import PortMapping


class TestParsePort:
    def test_wildcard_ipv4(self):
        assert parse_port("0.0.0.0:8080->80/tcp") == PortMapping(8080, 80, "tcp")

    def test_wildcard_ipv6(self):
        assert parse_port(":::8080->80/tcp") == PortMapping(8080, 80, "tcp")
        assert parse_port("[::]:8080->80/tcp") == PortMapping(8080, 80, "tcp")

    def test_bound_address(self):
        assert parse_port("127.0.0.1:5432->5432/tcp") == PortMapping(
            5432, 5432, "tcp", host_address="127.0.0.1"
        )

    def test_udp(self):
        assert parse_port("0.0.0.0:53->53/udp").protocol == "udp"

    def test_default_protocol(self):
        assert parse_port("0.0.0.0:80->8080").protocol == "tcp"

    def test_exposed_only(self):
        assert parse_port("443/tcp") == PortMapping(None, 443, "tcp")

    def test_garbage(self):
        assert parse_port("nonsense") is None


class TestParsePorts:
    def test_deduplicates_address_families(self):
        ports = parse_ports("0.0.0.0:5432->5432/tcp, :::5432->5432/tcp")
        assert ports == [PortMapping(5432, 5432, "tcp")]

    def test_empty(self):
        assert parse_ports("") == []


class TestParseSize:
    def test_with_virtual(self):
        assert parse_size("63B (virtual 432MB)") == (63, 432_000_000)

    def test_without_virtual(self):
        assert parse_size("1.5kB") == (1500, None)

    def test_empty(self):
        assert parse_size("") == (0, None)


class TestParseDockerPs:
    def test_golden(self, fixture_text):
        db, web, worker = parse_docker_ps(fixture_text("docker_ps.jsonl"))

        assert db.container_id == "3f4e8a1c2b9d"
        assert db.name == "shop-db-1"
        assert db.image == "postgres:16"
        assert db.created_at == datetime(
            2024, 1, 15, 10, 30, tzinfo=timezone(timedelta(hours=1))
        )
        assert db.labels == {
            "com.docker.compose.project": "shop",
            "com.docker.compose.service": "db",
        }
        assert db.local_volume_count == 1
        assert db.mounts == ["shop_pgdata"]
        assert db.ports == [PortMapping(5432, 5432, "tcp")]
        assert db.size == 63
        assert db.virtual_size == 432_000_000
        assert db.health_state == "healthy"
        assert db.is_running
        assert db.is_healthy

        assert web.labels == {}
        assert web.mounts == ["/srv/www", "/etc/nginx/conf.d"]
        assert web.networks == ["shop_default", "bridge"]
        assert web.ports == [
            PortMapping(8080, 80, "tcp", host_address="127.0.0.1"),
            PortMapping(None, 443, "tcp"),
        ]
        assert web.size == 2000
        assert web.health_state is None
        assert web.is_healthy

        assert worker.state == "exited"
        assert worker.status_message == "Exited (1) 3 hours ago"
        assert worker.mounts == []
        assert worker.ports == []
        assert not worker.is_running
        assert not worker.is_healthy

    def test_skips_unreadable_lines(self):
        output = 'not json\n{"ID": "abc", "State": "created", "Status": "Created"}\n'
        (container,) = parse_docker_ps(output)
        assert container.container_id == "abc"
        assert not container.is_running

    @pytest.mark.parametrize("line", ["null", "[]", "42", "\"running\""])
    def test_skips_lines_that_are_not_objects(self, line):
        output = '{"ID": "a", "State": "running", "Status": "Up"}\n' + line + "\n"
        (container,) = parse_docker_ps(output)
        assert container.container_id == "a"
        assert container.is_running


class TestHealth:
    @pytest.mark.parametrize(
        "status, state, health, healthy",
        [
            ("Up 5 minutes (healthy)", "running", "healthy", True),
            ("Up 5 minutes (unhealthy)", "running", "unhealthy", False),
            ("Up 3 seconds (health: starting)", "running", "starting", False),
            ("Up 5 minutes", "running", None, True),
            ("Exited (0) 2 minutes ago", "exited", None, False),
        ],
    )
    def test_health_from_status(self, status, state, health, healthy):
        container = parse_container({"ID": "x", "State": state, "Status": status})
        assert container.health_state == health
        assert container.is_healthy is healthy


class TestDockerProbe:
    def test_command(self):
        assert docker_ps_command() == "docker ps --format json --no-trunc"
        assert docker_ps_command(include_stopped=True).endswith(" -a")

    @pytest.mark.asyncio
    async def test_collect(self, fake_runner, fixture_text):
        runner = fake_runner({"docker ps": fixture_text("docker_ps.jsonl")})
        containers = (await DockerProbe(runner=runner).collect(include_stopped=True)).value
        assert len(containers) == 3
        assert runner.calls == ["docker ps --format json --no-trunc -a"]

    @pytest.mark.asyncio
    async def test_docker_missing(self, fake_runner):
        outcome = await DockerProbe(runner=fake_runner()).collect()
        assert not outcome.ok
