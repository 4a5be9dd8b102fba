"""状态管理器模块

负责维护每个服务的滚动状态：连续失败次数、累计检查次数、累计失败次数
以及最近一次健康/检查时间。状态只保存在内存中。
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, Optional

from ..models.health_check import HealthCheckResult, ServiceState
from ..utils.exceptions import StateManagerError


class StateManager:
    """状态管理器

    update 在事件循环内同步完成，不会让读取方看到更新到一半的状态；
    所有读取接口返回副本。
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        """初始化状态管理器

        Args:
            clock: 当前时间来源，测试中可替换
        """
        self._states: Dict[str, ServiceState] = {}
        self._clock = clock
        self.logger = logging.getLogger(__name__)

    def update(self, service_name: str, result: HealthCheckResult) -> ServiceState:
        """应用一次检查结果

        Args:
            service_name: 服务名称
            result: 健康检查结果

        Returns:
            更新后的状态副本

        Raises:
            StateManagerError: 状态不变量被破坏
        """
        now = self._clock()
        state = self._states.get(service_name)
        if state is None:
            state = ServiceState(service_name=service_name)
            self._states[service_name] = state
            self.logger.info(
                f"服务 {service_name} 初始状态: {'健康' if result.is_healthy else '不健康'}")
        elif state.is_healthy != result.is_healthy:
            old_text = "健康" if state.is_healthy else "不健康"
            new_text = "健康" if result.is_healthy else "不健康"
            self.logger.warning(f"服务 {service_name} 状态变化: {old_text} -> {new_text}")

        state.total_checks += 1
        if result.is_healthy:
            state.consecutive_failures = 0
            state.last_healthy_at = now
        else:
            state.consecutive_failures += 1
            state.total_failures += 1
        state.last_checked_at = now

        self._check_invariants(state)
        return replace(state)

    @staticmethod
    def _check_invariants(state: ServiceState):
        if not state.consecutive_failures <= state.total_failures <= state.total_checks:
            raise StateManagerError(
                f"服务 {state.service_name} 状态不一致: "
                f"consecutive={state.consecutive_failures}, "
                f"failures={state.total_failures}, checks={state.total_checks}",
                details={'service_name': state.service_name}
            )

    def get(self, service_name: str) -> Optional[ServiceState]:
        """获取服务当前状态

        Args:
            service_name: 服务名称

        Returns:
            状态副本，从未检查过的服务返回None
        """
        state = self._states.get(service_name)
        return replace(state) if state else None

    def list_all(self) -> Dict[str, ServiceState]:
        """获取所有服务状态的快照"""
        return {name: replace(state) for name, state in self._states.items()}

