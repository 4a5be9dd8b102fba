"""数据模型模块"""

from .health_check import (
    Alert, AlertKind, CheckKind, CycleResult, HealthCheckResult, OverallStatus,
    ServiceSpec, ServiceState, Severity
)

__all__ = ['Alert', 'AlertKind', 'CheckKind', 'CycleResult', 'HealthCheckResult',
           'OverallStatus', 'ServiceSpec', 'ServiceState', 'Severity']
