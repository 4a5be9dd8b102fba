"""告警规则评估器"""

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Dict, Any, List, Optional

from ..models.health_check import (
    Alert, AlertKind, HealthCheckResult, ServiceSpec, ServiceState, Severity
)


@dataclass(frozen=True)
class AlertThresholds:
    """告警阈值配置"""
    consecutive_failures: int = 3
    error_rate: float = 0.10
    min_checks_for_error_rate: int = 10
    slow_response_ms: float = 5000

    def __post_init__(self):
        if self.consecutive_failures < 1:
            raise ValueError("consecutive_failures 必须不小于 1")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class AlertEvaluator:
    """告警规则评估器

    根据服务定义、更新后的状态和本次检查结果生成告警，
    三条规则互相独立，满足条件的都会触发。评估不依赖任何内部状态。
    """

    def __init__(self, thresholds: Optional[AlertThresholds] = None):
        self.thresholds = thresholds or AlertThresholds()

    def evaluate(self, spec: ServiceSpec, state: ServiceState,
                 result: HealthCheckResult,
                 now: Optional[datetime] = None) -> List[Alert]:
        """
        评估一次状态更新

        Args:
            spec: 服务定义
            state: 应用本次结果之后的服务状态
            result: 本次检查结果
            now: 告警创建时间，默认使用检查结果的时间

        Returns:
            List[Alert]: 触发的告警，0到3条
        """
        created_at = now or result.timestamp
        severity = Severity.CRITICAL if spec.critical else Severity.WARNING
        alerts = []

        count = state.consecutive_failures
        if count >= self.thresholds.consecutive_failures:
            alerts.append(self._build(
                AlertKind.CONSECUTIVE_FAILURES, spec, severity, created_at,
                f"服务 {spec.name} 已连续 {count} 次健康检查失败",
                {'consecutive_failures': count}
            ))

        if state.total_checks > self.thresholds.min_checks_for_error_rate:
            error_rate = state.total_failures / state.total_checks
            if error_rate > self.thresholds.error_rate:
                percent = round(error_rate * 100)
                alerts.append(self._build(
                    AlertKind.HIGH_ERROR_RATE, spec, severity, created_at,
                    f"服务 {spec.name} 错误率过高: {percent}%",
                    {'error_rate': percent}
                ))

        latency = result.latency_ms
        if result.is_healthy and latency is not None and latency > self.thresholds.slow_response_ms:
            # 慢响应固定为 warning，与服务是否关键无关
            alerts.append(self._build(
                AlertKind.SLOW_RESPONSE, spec, Severity.WARNING, created_at,
                f"服务 {spec.name} 响应缓慢: {latency:.0f}ms",
                {'response_time_ms': latency}
            ))

        return alerts

    @staticmethod
    def _build(kind: AlertKind, spec: ServiceSpec, severity: Severity,
               created_at: datetime, message: str, metadata: Dict[str, Any]) -> Alert:
        return Alert(
            kind=kind,
            service_name=spec.name,
            critical=spec.critical,
            severity=severity,
            message=message,
            metadata=metadata,
            created_at=created_at
        )
