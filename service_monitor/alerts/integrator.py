"""告警系统集成器

把单个服务的一次检查结果依次送入 状态管理器 -> 规则评估器 -> 告警台账 -> 告警管理器
"""

import logging
from datetime import datetime
from typing import Dict, List, Any, Callable, Type

from .base import BaseAlerter
from .evaluator import AlertEvaluator
from .http_alerter import HTTPAlerter
from .ledger import AlertLedger
from .manager import AlertManager
from .pagerduty_alerter import PagerDutyAlerter
from .slack_alerter import SlackAlerter
from ..models.health_check import (
    Alert, AlertKind, HealthCheckResult, ServiceSpec, Severity
)
from ..services.state_manager import StateManager

ALERTER_TYPES: Dict[str, Type[BaseAlerter]] = {
    'http': HTTPAlerter,
    'slack': SlackAlerter,
    'pagerduty': PagerDutyAlerter,
}


class AlertIntegrator:
    """告警系统集成器"""

    def __init__(self, state_manager: StateManager, evaluator: AlertEvaluator,
                 ledger: AlertLedger, alert_manager: AlertManager,
                 clock: Callable[[], datetime] = datetime.now):
        """初始化告警集成器

        Args:
            state_manager: 状态管理器
            evaluator: 告警规则评估器
            ledger: 告警台账
            alert_manager: 告警管理器
            clock: 当前时间来源
        """
        self.state_manager = state_manager
        self.evaluator = evaluator
        self.ledger = ledger
        self.alert_manager = alert_manager
        self._clock = clock
        self.logger = logging.getLogger(__name__)

    def initialize_alerters(self, alert_configs: List[Dict[str, Any]]):
        """按配置创建告警渠道，单个渠道失败不影响其他渠道

        Args:
            alert_configs: 告警渠道配置列表
        """
        for config in alert_configs:
            alerter_name = config.get('name', f'alerter_{self.alert_manager.get_alerter_count()}')
            alerter_class = ALERTER_TYPES.get(str(config.get('type', '')).lower())
            if alerter_class is None:
                self.logger.warning(f"不支持的告警渠道类型: {config.get('type')}")
                continue

            try:
                self.alert_manager.add_alerter(alerter_class(alerter_name, config))
            except Exception as e:
                self.logger.error(f"初始化告警渠道失败 {alerter_name}: {e}")

    async def process_health_check_result(self, spec: ServiceSpec,
                                          result: HealthCheckResult) -> List[Alert]:
        """处理一次健康检查结果

        Args:
            spec: 服务定义
            result: 健康检查结果

        Returns:
            本次被接受并分发的告警
        """
        state = self.state_manager.update(spec.name, result)
        candidates = self.evaluator.evaluate(spec, state, result, now=self._clock())

        accepted = []
        for alert in candidates:
            if not self.ledger.offer(alert):
                continue
            accepted.append(alert)
            self.logger.warning(
                f"触发告警 [{alert.severity.value}] {alert.kind.value}: {alert.message}")
            self.alert_manager.dispatch(alert)

        return accepted

    async def test_alert_system(self, service_name: str = "test-service") -> bool:
        """向所有渠道发送一条测试告警，不经过台账

        Args:
            service_name: 测试服务名称

        Returns:
            是否所有渠道都发送成功
        """
        if not self.alert_manager.alerters:
            self.logger.warning("没有配置告警渠道")
            return False

        alert = Alert(
            kind=AlertKind.CONSECUTIVE_FAILURES,
            service_name=service_name,
            critical=False,
            severity=Severity.WARNING,
            message="告警系统测试",
            metadata={'test': True},
            created_at=self._clock()
        )
        tasks = self.alert_manager.dispatch(alert)
        await self.alert_manager.drain()
        success = all(task.result() for task in tasks)

        self.logger.info(f"告警系统测试完成: {'成功' if success else '存在失败渠道'}")
        return success

    def get_alert_stats(self) -> Dict[str, Any]:
        """获取告警统计信息"""
        stats = self.alert_manager.get_delivery_stats()
        stats['total_accepted'] = self.ledger.total_accepted
        stats['retained'] = len(self.ledger.all())
        return stats
