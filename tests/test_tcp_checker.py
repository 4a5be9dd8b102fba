"""TCP健康检查器测试"""

import asyncio
import socket
from unittest.mock import patch

import pytest

from service_monitor.checkers.tcp_checker import TcpHealthChecker
from service_monitor.models.health_check import CheckKind, ServiceSpec


def unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(('127.0.0.1', 0))
        return sock.getsockname()[1]


class TestTcpHealthChecker:
    """TCP健康检查器测试类"""

    @pytest.mark.asyncio
    async def test_open_port(self):
        """测试端口可连接视为健康"""
        async def handle(reader, writer):
            writer.close()

        server = await asyncio.start_server(handle, '127.0.0.1', 0)
        port = server.sockets[0].getsockname()[1]
        try:
            spec = ServiceSpec('redis', CheckKind.TCP, f'127.0.0.1:{port}')
            result = await TcpHealthChecker(spec, timeout=2).check_health()
        finally:
            server.close()
            await server.wait_closed()

        assert result.is_healthy is True
        assert result.check_kind == CheckKind.TCP
        assert result.latency_ms is not None
        assert result.error_message is None

    @pytest.mark.asyncio
    async def test_closed_port(self):
        """测试端口未监听"""
        spec = ServiceSpec('redis', CheckKind.TCP, f'tcp://127.0.0.1:{unused_port()}')
        result = await TcpHealthChecker(spec, timeout=2).check_health()

        assert result.is_healthy is False
        assert 'TCP连接失败' in result.error_message
        assert result.latency_ms is None

    @pytest.mark.asyncio
    async def test_timeout(self):
        """测试连接超时"""
        async def never_connects(*args, **kwargs):
            await asyncio.sleep(10)

        spec = ServiceSpec('redis', CheckKind.TCP, '10.255.255.1:6379')
        with patch.object(asyncio, 'open_connection', never_connects):
            result = await TcpHealthChecker(spec, timeout=0.1).check_health()

        assert result.is_healthy is False
        assert 'TCP连接超时' in result.error_message

    @pytest.mark.asyncio
    async def test_invalid_target(self):
        """测试无法解析的目标"""
        spec = ServiceSpec('redis', CheckKind.TCP, 'redis-without-port')
        result = await TcpHealthChecker(spec, timeout=1).check_health()

        assert result.is_healthy is False
        assert result.error_message
