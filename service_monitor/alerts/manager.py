"""告警管理器"""

import asyncio
import logging
from typing import Dict, List, Any, Set

from .base import BaseAlerter
from ..models.health_check import Alert
from ..utils.exceptions import AlertConfigError


class AlertManager:
    """告警管理器，负责把已接受的告警分发到所有告警渠道

    每个渠道独立投递，互不阻塞，也不阻塞检查周期。
    投递失败只记录日志，不重试。
    """

    def __init__(self):
        self.alerters: List[BaseAlerter] = []
        self._pending: Set[asyncio.Task] = set()
        self._sent_count = 0
        self._failed_count = 0
        self.logger = logging.getLogger(__name__)

    def add_alerter(self, alerter: BaseAlerter):
        """
        添加告警渠道

        Args:
            alerter: 告警渠道实例

        Raises:
            AlertConfigError: 对象不是告警渠道
        """
        if not isinstance(alerter, BaseAlerter):
            raise AlertConfigError(f"告警渠道必须继承自BaseAlerter: {type(alerter)}")

        self.alerters.append(alerter)
        self.logger.info(f"已添加告警渠道: {alerter.name} ({alerter.alerter_type})")

    def remove_alerter(self, name: str) -> bool:
        """
        移除告警渠道

        Args:
            name: 渠道名称

        Returns:
            bool: 是否成功移除
        """
        for i, alerter in enumerate(self.alerters):
            if alerter.name == name:
                self.alerters.pop(i)
                self.logger.info(f"已移除告警渠道: {name}")
                return True
        return False

    def dispatch(self, alert: Alert) -> List[asyncio.Task]:
        """
        分发告警，立即返回

        必须在事件循环中调用。

        Args:
            alert: 已接受的告警

        Returns:
            List[asyncio.Task]: 每个渠道对应的投递任务
        """
        if not self.alerters:
            self.logger.debug(f"没有配置告警渠道，跳过发送: {alert.dedup_key}")
            return []

        tasks = []
        for alerter in self.alerters:
            task = asyncio.get_running_loop().create_task(
                self._send_to_alerter(alerter, alert))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            tasks.append(task)
        return tasks

    async def _send_to_alerter(self, alerter: BaseAlerter, alert: Alert) -> bool:
        """
        向单个渠道投递告警，异常在此处吸收并记录

        Args:
            alerter: 告警渠道
            alert: 告警事件

        Returns:
            bool: 是否投递成功
        """
        try:
            success = await alerter.send_alert(alert)
        except Exception as e:
            self._failed_count += 1
            self.logger.error(
                f"告警渠道 {alerter.name} 发送失败: {e} (服务: {alert.service_name}, "
                f"类型: {alert.kind.value})")
            return False

        if success:
            self._sent_count += 1
            self.logger.info(
                f"告警已发送到 {alerter.name} (服务: {alert.service_name}, 类型: {alert.kind.value})")
        else:
            self._failed_count += 1
            self.logger.warning(
                f"告警渠道 {alerter.name} 未接受告警 (服务: {alert.service_name}, "
                f"类型: {alert.kind.value})")
        return success

    async def drain(self):
        """等待所有未完成的投递任务，用于关闭和测试"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def get_alerter_count(self) -> int:
        return len(self.alerters)

    def get_alerter_names(self) -> List[str]:
        return [alerter.name for alerter in self.alerters]

    def get_delivery_stats(self) -> Dict[str, Any]:
        """获取投递统计信息"""
        return {
            'alerter_count': self.get_alerter_count(),
            'alerter_names': self.get_alerter_names(),
            'sent': self._sent_count,
            'failed': self._failed_count,
            'pending': len(self._pending)
        }
