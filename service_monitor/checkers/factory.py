"""健康检查器工厂"""

from typing import Dict, Type

from .base import BaseHealthChecker, DEFAULT_TIMEOUT
from ..models.health_check import CheckKind, ServiceSpec
from ..utils.exceptions import CheckerError


class HealthCheckerFactory:
    """健康检查器工厂类，按探测方式创建检查器"""

    def __init__(self):
        self._checkers: Dict[CheckKind, Type[BaseHealthChecker]] = {}

    def register_checker(self, check_kind: CheckKind,
                         checker_class: Type[BaseHealthChecker]):
        """
        注册健康检查器类

        Args:
            check_kind: 探测方式
            checker_class: 健康检查器类

        Raises:
            CheckerError: 注册失败
        """
        if not issubclass(checker_class, BaseHealthChecker):
            raise CheckerError(f"检查器类 {checker_class.__name__} 必须继承自 BaseHealthChecker")

        if check_kind in self._checkers:
            raise CheckerError(f"探测方式 '{check_kind.value}' 已经注册了检查器")

        self._checkers[check_kind] = checker_class

    def create_checker(self, spec: ServiceSpec,
                       timeout: float = DEFAULT_TIMEOUT) -> BaseHealthChecker:
        """
        创建健康检查器实例

        Args:
            spec: 服务定义
            timeout: 探测超时时间（秒）

        Returns:
            BaseHealthChecker: 健康检查器实例

        Raises:
            CheckerError: 不支持的探测方式
        """
        checker_class = self._checkers.get(spec.check_kind)
        if checker_class is None:
            raise CheckerError(f"不支持的探测方式: '{spec.check_kind}'",
                               service_name=spec.name)

        return checker_class(spec, timeout)

    def get_supported_kinds(self) -> list:
        return [kind.value for kind in self._checkers]


# 全局工厂实例，只保存检查器类型，不保存任何监控状态
health_checker_factory = HealthCheckerFactory()


def register_checker(check_kind: CheckKind):
    """
    装饰器：注册健康检查器类

    Args:
        check_kind: 探测方式
    """
    def decorator(checker_class: Type[BaseHealthChecker]):
        health_checker_factory.register_checker(check_kind, checker_class)
        return checker_class

    return decorator
