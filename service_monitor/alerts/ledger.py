"""告警去重与保留台账"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List

from ..models.health_check import Alert


class AlertLedger:
    """告警台账

    同一 (告警类型, 服务) 在冷却窗口内只接受第一条；
    每次接受告警时清理超过保留窗口的历史告警。
    清理只影响台账自身，不会撤销已经接受并发出的告警。
    """

    def __init__(self, dedup_window: timedelta = timedelta(minutes=5),
                 retention: timedelta = timedelta(hours=1),
                 clock: Callable[[], datetime] = datetime.now):
        """
        初始化告警台账

        Args:
            dedup_window: 去重冷却窗口
            retention: 告警保留时长
            clock: 当前时间来源，测试中可替换
        """
        self.dedup_window = dedup_window
        self.retention = retention
        self._clock = clock
        self._alerts: List[Alert] = []
        self._last_accepted: Dict[str, datetime] = {}
        self._total_accepted = 0
        self.logger = logging.getLogger(__name__)

    def offer(self, alert: Alert) -> bool:
        """
        提交一条告警

        Args:
            alert: 告警事件

        Returns:
            bool: 是否被接受
        """
        last_time = self._last_accepted.get(alert.dedup_key)
        if last_time is not None and alert.created_at - last_time < self.dedup_window:
            self.logger.debug(f"告警去重，跳过: {alert.dedup_key}")
            return False

        self._alerts.append(alert)
        self._last_accepted[alert.dedup_key] = alert.created_at
        self._total_accepted += 1
        self._prune()
        return True

    def _prune(self):
        now = self._clock()
        cutoff = now - self.retention
        original_count = len(self._alerts)
        self._alerts = [a for a in self._alerts if a.created_at > cutoff]

        # 超过冷却窗口的去重记录已无作用
        expired_keys = [
            key for key, accepted_at in self._last_accepted.items()
            if now - accepted_at >= self.dedup_window
        ]
        for key in expired_keys:
            del self._last_accepted[key]

        pruned = original_count - len(self._alerts)
        if pruned > 0:
            self.logger.debug(f"清理了 {pruned} 条过期告警")

    def all(self) -> List[Alert]:
        """获取保留窗口内的全部告警，按接受顺序排列"""
        cutoff = self._clock() - self.retention
        return [a for a in self._alerts if a.created_at > cutoff]

    def recent(self, n: int) -> List[Alert]:
        """
        获取最近的告警

        Args:
            n: 数量

        Returns:
            最近 n 条告警，按时间先后排列
        """
        if n <= 0:
            return []
        return self.all()[-n:]

    @property
    def total_accepted(self) -> int:
        """进程启动以来累计接受的告警数量"""
        return self._total_accepted
