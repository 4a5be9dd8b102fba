"""TCP端口健康检查器"""

import asyncio
import time

from .base import BaseHealthChecker
from .factory import register_checker
from ..models.health_check import CheckKind, HealthCheckResult


@register_checker(CheckKind.TCP)
class TcpHealthChecker(BaseHealthChecker):
    """TCP健康检查器，建立连接即视为健康，连接随即关闭，不收发数据"""

    async def check_health(self) -> HealthCheckResult:
        """
        执行TCP连接检查

        Returns:
            HealthCheckResult: 健康检查结果
        """
        try:
            host, port = self.spec.host_port()
        except ValueError as e:
            return self._result(False, error_message=str(e))

        start_time = time.monotonic()
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port), timeout=self.timeout)
            latency_ms = self._elapsed_ms(start_time)
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass
            return self._result(True, latency_ms)

        except asyncio.TimeoutError:
            error_message = f"TCP连接超时 ({self.timeout}s)"
        except OSError as e:
            error_message = f"TCP连接失败: {e}"
        except Exception as e:
            error_message = f"TCP健康检查异常: {e}"

        self.logger.debug(f"服务 {self.name} 探测失败: {error_message}")
        return self._result(False, error_message=error_message)
