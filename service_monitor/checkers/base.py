"""健康检查器基类"""

import time
from abc import ABC, abstractmethod
from typing import Optional

from ..models.health_check import HealthCheckResult, ServiceSpec
from ..utils.log_manager import get_logger

DEFAULT_TIMEOUT = 5.0


class BaseHealthChecker(ABC):
    """健康检查器抽象基类

    check_health 不允许抛出异常，所有失败都以 is_healthy=False 的结果返回
    """

    def __init__(self, spec: ServiceSpec, timeout: float = DEFAULT_TIMEOUT):
        """
        初始化健康检查器

        Args:
            spec: 服务定义
            timeout: 单次探测超时时间（秒）
        """
        self.spec = spec
        self.name = spec.name
        self.timeout = timeout
        self.logger = get_logger(f'checker.{spec.check_kind.value}.{self.name}')

    @abstractmethod
    async def check_health(self) -> HealthCheckResult:
        """
        执行一次探测

        Returns:
            HealthCheckResult: 健康检查结果
        """
        pass

    def _result(self, is_healthy: bool, latency_ms: Optional[float] = None,
                error_message: Optional[str] = None, **metadata) -> HealthCheckResult:
        return HealthCheckResult(
            service_name=self.name,
            check_kind=self.spec.check_kind,
            is_healthy=is_healthy,
            latency_ms=latency_ms,
            error_message=None if is_healthy else error_message,
            metadata=metadata
        )

    @staticmethod
    def _elapsed_ms(start: float) -> float:
        return round((time.monotonic() - start) * 1000, 2)
