"""测试用的模拟组件"""

import asyncio
from datetime import datetime, timedelta
from typing import List, Optional

from service_monitor.alerts.base import BaseAlerter
from service_monitor.checkers.base import BaseHealthChecker
from service_monitor.models.health_check import Alert, HealthCheckResult, ServiceSpec


class FakeClock:
    """可手动推进的时钟"""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 0, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class ScriptedChecker(BaseHealthChecker):
    """按预设结果返回的检查器

    outcomes 中每一项为 True/False，或 (True, 延迟毫秒)；用完后重复最后一项。
    delay 为每次检查实际耗费的秒数。
    """

    def __init__(self, spec: ServiceSpec, outcomes: List, gate: Optional[asyncio.Event] = None,
                 delay: float = 0):
        super().__init__(spec, timeout=1)
        self.outcomes = list(outcomes)
        self.gate = gate
        self.delay = delay
        self.calls = 0

    async def check_health(self) -> HealthCheckResult:
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)

        index = min(self.calls, len(self.outcomes) - 1)
        self.calls += 1
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome

        if isinstance(outcome, tuple):
            healthy, latency = outcome
        else:
            healthy, latency = outcome, 10.0
        if healthy:
            return self._result(True, latency)
        return self._result(False, error_message='模拟失败')

    def push(self, *outcomes):
        """追加后续结果，从下一次调用开始生效"""
        self.outcomes = self.outcomes[:self.calls] + list(outcomes)


class RecordingAlerter(BaseAlerter):
    """记录收到的告警"""

    def __init__(self, name: str = 'recorder', config: Optional[dict] = None):
        super().__init__(name, config or {})
        self.alerts: List[Alert] = []

    async def send_alert(self, alert: Alert) -> bool:
        self.alerts.append(alert)
        return True

    def validate_config(self) -> bool:
        return True
