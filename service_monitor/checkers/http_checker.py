"""HTTP健康检查器"""

import asyncio
import time

import aiohttp

from .base import BaseHealthChecker
from .factory import register_checker
from ..models.health_check import CheckKind, HealthCheckResult


@register_checker(CheckKind.HTTP)
class HttpHealthChecker(BaseHealthChecker):
    """HTTP健康检查器

    对目标URL发起GET请求，状态码在 [200, 300) 之间视为健康。
    延迟为请求开始到收到响应头的时间，不读取响应体。
    """

    async def check_health(self) -> HealthCheckResult:
        """
        执行HTTP健康检查

        Returns:
            HealthCheckResult: 健康检查结果
        """
        url = self.spec.target
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        start_time = time.monotonic()

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url) as response:
                    latency_ms = self._elapsed_ms(start_time)
                    if 200 <= response.status < 300:
                        return self._result(True, latency_ms, status_code=response.status)

                    return self._result(
                        False, latency_ms,
                        f"HTTP状态码异常: {response.status}",
                        status_code=response.status
                    )

        except asyncio.TimeoutError:
            error_message = f"HTTP请求超时 ({self.timeout}s)"
        except aiohttp.ClientError as e:
            error_message = f"HTTP客户端错误: {e}"
        except Exception as e:
            error_message = f"HTTP健康检查异常: {e}"

        self.logger.debug(f"服务 {self.name} 探测失败: {error_message}")
        return self._result(False, error_message=error_message)
