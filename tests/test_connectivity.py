"""Connectivity probe behaviour."""

from __future__ import annotations

import asyncio

import pytest

from app.services.connectivity import SocketConnectivityChecker, StaticConnectivity


def test_static_connectivity_reports_configured_value() -> None:
    async def runner() -> tuple[bool, bool]:
        return (
            await StaticConnectivity(online=True).is_network_available(),
            await StaticConnectivity(online=False).is_network_available(),
        )

    assert asyncio.run(runner()) == (True, False)


def test_socket_checker_derives_host_and_port() -> None:
    checker = SocketConnectivityChecker("https://api.jikan.moe/v4")
    assert (checker.host, checker.port) == ("api.jikan.moe", 443)

    plain = SocketConnectivityChecker("http://localhost:8080/v4")
    assert (plain.host, plain.port) == ("localhost", 8080)


def test_socket_checker_rejects_hostless_url() -> None:
    with pytest.raises(ValueError):
        SocketConnectivityChecker("not a url")


def test_socket_checker_probes_local_server() -> None:
    async def runner() -> tuple[bool, bool]:
        async def on_connect(_reader, writer) -> None:
            writer.close()

        server = await asyncio.start_server(on_connect, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        checker = SocketConnectivityChecker(f"http://127.0.0.1:{port}", timeout=1)
        reachable = await checker.is_network_available()

        server.close()
        await server.wait_closed()
        unreachable = await checker.is_network_available()
        return reachable, unreachable

    assert asyncio.run(runner()) == (True, False)
