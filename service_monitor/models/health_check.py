"""健康检查相关的数据模型"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional, List, Tuple
from urllib.parse import urlparse


class CheckKind(str, Enum):
    """探测方式"""
    HTTP = "http"
    TCP = "tcp"


class AlertKind(str, Enum):
    """告警类型"""
    CONSECUTIVE_FAILURES = "consecutive_failures"
    HIGH_ERROR_RATE = "high_error_rate"
    SLOW_RESPONSE = "slow_response"


class Severity(str, Enum):
    """告警级别"""
    CRITICAL = "critical"
    WARNING = "warning"


class OverallStatus(str, Enum):
    """整体健康结论"""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class ServiceSpec:
    """被监控服务的静态定义，进程生命周期内不可变"""
    name: str
    check_kind: CheckKind
    target: str
    critical: bool = False

    def host_port(self) -> Tuple[str, int]:
        """
        解析TCP探测目标

        支持 host:port、tcp://host:port 以及 http://host:port 三种写法

        Returns:
            tuple: (主机, 端口)

        Raises:
            ValueError: 目标地址无法解析
        """
        target = self.target
        if '://' in target:
            parsed = urlparse(target)
            host, port = parsed.hostname, parsed.port
        else:
            host, _, port_text = target.rpartition(':')
            port = int(port_text) if port_text.isdigit() else None
        if not host or port is None:
            raise ValueError(f"无法解析TCP目标地址: {self.target}")
        return host, port


@dataclass
class HealthCheckResult:
    """健康检查结果数据模型"""
    service_name: str
    check_kind: CheckKind
    is_healthy: bool
    latency_ms: Optional[float] = None  # 毫秒
    error_message: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'service': self.service_name,
            'check_kind': self.check_kind.value,
            'healthy': self.is_healthy,
            'response_time_ms': self.latency_ms,
            'error': self.error_message,
            'timestamp': self.timestamp.isoformat(),
            'metadata': self.metadata
        }


@dataclass
class ServiceState:
    """单个服务的滚动状态"""
    service_name: str
    consecutive_failures: int = 0
    total_checks: int = 0
    total_failures: int = 0
    last_healthy_at: Optional[datetime] = None
    last_checked_at: Optional[datetime] = None

    @property
    def error_rate(self) -> float:
        if self.total_checks == 0:
            return 0.0
        return self.total_failures / self.total_checks

    @property
    def is_healthy(self) -> bool:
        return self.consecutive_failures == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.service_name,
            'consecutive_failures': self.consecutive_failures,
            'total_checks': self.total_checks,
            'total_failures': self.total_failures,
            'error_rate': self.error_rate,
            'last_healthy_at': _isoformat(self.last_healthy_at),
            'last_checked_at': _isoformat(self.last_checked_at)
        }


@dataclass
class Alert:
    """告警事件模型"""
    kind: AlertKind
    service_name: str
    critical: bool
    severity: Severity
    message: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def dedup_key(self) -> str:
        return f"{self.kind.value}:{self.service_name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.kind.value,
            'service': self.service_name,
            'critical': self.critical,
            'severity': self.severity.value,
            'message': self.message,
            'metadata': self.metadata,
            'timestamp': self.created_at.isoformat(),
            'key': self.dedup_key
        }


@dataclass
class CycleResult:
    """一轮检查的汇总结果"""
    overall: OverallStatus
    services: List[Dict[str, Any]] = field(default_factory=list)
    total: int = 0
    healthy: int = 0
    unhealthy: int = 0
    critical_unhealthy: int = 0
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp.isoformat(),
            'overall': self.overall.value,
            'services': self.services,
            'summary': {
                'total': self.total,
                'healthy': self.healthy,
                'unhealthy': self.unhealthy,
                'critical_unhealthy': self.critical_unhealthy
            }
        }
