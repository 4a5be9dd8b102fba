"""监控调度器模块

按固定间隔驱动 探测 -> 状态更新 -> 规则评估 -> 去重 -> 通知 的检查周期，
并提供只读的状态快照查询。
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Dict, Any, List, Optional, Callable, Set

from ..alerts.evaluator import AlertEvaluator, AlertThresholds
from ..alerts.integrator import AlertIntegrator
from ..alerts.ledger import AlertLedger
from ..alerts.manager import AlertManager
from ..checkers.base import BaseHealthChecker
from ..checkers.factory import HealthCheckerFactory, health_checker_factory
from ..models.health_check import (
    CycleResult, HealthCheckResult, OverallStatus, ServiceSpec
)
from ..services.state_manager import StateManager
from ..utils.exceptions import SchedulerError


class MonitorScheduler:
    """监控调度器

    持有状态管理器、告警台账和告警管理器，同一进程内可以存在多个互不影响的实例。
    定时触发按固定周期进行，不受单轮耗时影响。
    检查周期串行执行：定时触发时如果上一轮还没结束则跳过本次，
    按需触发的周期会等待上一轮结束后再执行。
    """

    def __init__(self, services: List[ServiceSpec],
                 thresholds: Optional[AlertThresholds] = None,
                 check_interval: float = 30,
                 check_timeout: float = 5,
                 dedup_window: timedelta = timedelta(minutes=5),
                 alert_retention: timedelta = timedelta(hours=1),
                 alert_configs: Optional[List[Dict[str, Any]]] = None,
                 clock: Callable[[], datetime] = datetime.now,
                 checker_factory: HealthCheckerFactory = health_checker_factory):
        """初始化监控调度器

        Args:
            services: 服务定义列表
            thresholds: 告警阈值
            check_interval: 检查间隔（秒）
            check_timeout: 单次探测超时（秒）
            dedup_window: 告警去重冷却窗口
            alert_retention: 告警保留时长
            alert_configs: 告警渠道配置列表
            clock: 当前时间来源
            checker_factory: 检查器工厂

        Raises:
            SchedulerError: 服务名称重复
        """
        if check_interval <= 0:
            raise SchedulerError("检查间隔必须是正数")

        self.check_interval = check_interval
        self.check_timeout = check_timeout
        self.logger = logging.getLogger(__name__)
        self._clock = clock

        self.services: Dict[str, ServiceSpec] = {}
        self.checkers: Dict[str, BaseHealthChecker] = {}
        for spec in services:
            if spec.name in self.services:
                raise SchedulerError(f"服务名称重复: {spec.name}", service_name=spec.name)
            self.services[spec.name] = spec
            self.checkers[spec.name] = checker_factory.create_checker(spec, check_timeout)
            self.logger.info(
                f"配置服务 {spec.name}: 类型={spec.check_kind.value}, "
                f"关键={'是' if spec.critical else '否'}")

        self.state_manager = StateManager(clock=clock)
        self.alert_ledger = AlertLedger(dedup_window, alert_retention, clock=clock)
        self.alert_manager = AlertManager()
        self.alert_integrator = AlertIntegrator(
            self.state_manager,
            AlertEvaluator(thresholds),
            self.alert_ledger,
            self.alert_manager,
            clock=clock
        )
        if alert_configs:
            self.alert_integrator.initialize_alerters(alert_configs)

        self.last_cycle: Optional[CycleResult] = None
        self.cycle_count = 0
        self.skipped_ticks = 0
        self._cycle_lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self._tick_tasks: Set[asyncio.Task] = set()

    @property
    def thresholds(self) -> AlertThresholds:
        return self.alert_integrator.evaluator.thresholds

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """启动定时检查任务

        Returns:
            asyncio.Task: 可取消的定时任务句柄
        """
        if self.is_running:
            self.logger.warning("监控调度器已经在运行")
            return self._task

        self.logger.info(
            f"启动监控调度器: {len(self.services)} 个服务, 间隔 {self.check_interval}s")
        self._task = asyncio.get_running_loop().create_task(self._schedule_loop())
        return self._task

    async def stop(self):
        """停止定时检查并等待未完成的告警投递"""
        if self._task is not None:
            self.logger.info("正在停止监控调度器...")
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        pending = list(self._tick_tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        await self.alert_manager.drain()
        self.logger.info("监控调度器已停止")

    async def _schedule_loop(self):
        """调度循环

        按单调时钟计算下一次触发时间，单轮耗时不会推迟后续触发。
        """
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while True:
            task = loop.create_task(self.tick())
            self._tick_tasks.add(task)
            task.add_done_callback(self._tick_tasks.discard)

            next_tick += self.check_interval
            await asyncio.sleep(max(0.0, next_tick - loop.time()))

    async def tick(self) -> Optional[CycleResult]:
        """定时触发一次检查周期，上一轮未结束时跳过

        Returns:
            本轮结果，跳过时返回None
        """
        if self._cycle_lock.locked():
            self.skipped_ticks += 1
            self.logger.warning("上一轮检查尚未完成，跳过本次定时检查")
            return None

        try:
            return await self.run_cycle()
        except Exception as e:
            self.logger.error(f"定时检查失败: {e}", exc_info=True)
            return None

    async def run_cycle(self) -> CycleResult:
        """执行一轮检查

        所有服务并发探测，每个服务独立完成状态更新、评估、去重和通知。

        Returns:
            CycleResult: 本轮汇总结果
        """
        async with self._cycle_lock:
            self.logger.info(f"开始健康检查: {len(self.services)} 个服务")
            specs = list(self.services.values())
            results = await asyncio.gather(
                *(self._check_service(spec) for spec in specs),
                return_exceptions=True
            )

            service_results = []
            for spec, result in zip(specs, results):
                if isinstance(result, BaseException):
                    # _check_service 自身已捕获异常，这里只兜底
                    self.logger.error(f"检查服务 {spec.name} 异常: {result}")
                    result = HealthCheckResult(
                        service_name=spec.name,
                        check_kind=spec.check_kind,
                        is_healthy=False,
                        error_message=str(result)
                    )
                service_results.append((spec, result))

            cycle = self._summarize(service_results)
            self.last_cycle = cycle
            self.cycle_count += 1

            self.logger.info(
                f"健康检查完成: 总数={cycle.total}, 健康={cycle.healthy}, "
                f"不健康={cycle.unhealthy}, 关键服务不健康={cycle.critical_unhealthy}")
            return cycle

    async def _check_service(self, spec: ServiceSpec) -> HealthCheckResult:
        """探测单个服务并处理结果

        Args:
            spec: 服务定义

        Returns:
            HealthCheckResult: 探测结果
        """
        checker = self.checkers[spec.name]
        try:
            result = await checker.check_health()
        except Exception as e:
            self.logger.error(f"服务 {spec.name} 探测异常: {e}")
            result = HealthCheckResult(
                service_name=spec.name,
                check_kind=spec.check_kind,
                is_healthy=False,
                error_message=f"探测异常: {e}"
            )

        status = "健康" if result.is_healthy else f"不健康 ({result.error_message})"
        self.logger.debug(f"服务 {spec.name} 检查完成: {status}")

        try:
            await self.alert_integrator.process_health_check_result(spec, result)
        except Exception as e:
            self.logger.error(f"处理服务 {spec.name} 的检查结果失败: {e}", exc_info=True)

        return result

    def _summarize(self, service_results) -> CycleResult:
        entries = []
        healthy = unhealthy = critical_unhealthy = 0
        for spec, result in service_results:
            entry = result.to_dict()
            entry['critical'] = spec.critical
            state = self.state_manager.get(spec.name)
            if state is not None:
                entry['state'] = state.to_dict()
            entries.append(entry)

            if result.is_healthy:
                healthy += 1
            else:
                unhealthy += 1
                if spec.critical:
                    critical_unhealthy += 1

        overall = OverallStatus.UNHEALTHY if critical_unhealthy > 0 else OverallStatus.HEALTHY
        return CycleResult(
            overall=overall,
            services=entries,
            total=len(entries),
            healthy=healthy,
            unhealthy=unhealthy,
            critical_unhealthy=critical_unhealthy,
            timestamp=self._clock()
        )

    def get_last_cycle(self) -> CycleResult:
        """获取最近一轮结果，尚无结果时所有服务为 unknown"""
        if self.last_cycle is not None:
            return self.last_cycle

        return CycleResult(
            overall=OverallStatus.UNKNOWN,
            services=[
                {'service': spec.name, 'critical': spec.critical,
                 'status': OverallStatus.UNKNOWN.value}
                for spec in self.services.values()
            ],
            total=len(self.services),
            timestamp=self._clock()
        )

    def get_status_snapshot(self, alert_limit: int = 10) -> Dict[str, Any]:
        """获取状态快照

        Args:
            alert_limit: 返回最近告警的数量

        Returns:
            包含服务状态、最近告警和阈值配置的字典
        """
        states = self.state_manager.list_all()
        services = []
        for spec in self.services.values():
            state = states.get(spec.name)
            if state is None:
                entry = {'name': spec.name, 'status': OverallStatus.UNKNOWN.value}
            else:
                entry = state.to_dict()
                entry['status'] = (OverallStatus.HEALTHY if state.is_healthy
                                   else OverallStatus.UNHEALTHY).value
            entry['critical'] = spec.critical
            services.append(entry)

        return {
            'timestamp': self._clock().isoformat(),
            'services': services,
            'alerts': [a.to_dict() for a in self.alert_ledger.recent(alert_limit)],
            'thresholds': {
                **self.thresholds.to_dict(),
                'dedup_window_seconds': self.alert_ledger.dedup_window.total_seconds(),
                'alert_retention_seconds': self.alert_ledger.retention.total_seconds(),
                'check_interval_seconds': self.check_interval,
                'check_timeout_seconds': self.check_timeout
            }
        }

    def get_recent_alerts(self, limit: int = 50) -> List[Dict[str, Any]]:
        return [a.to_dict() for a in self.alert_ledger.recent(limit)]

    def get_scheduler_stats(self) -> Dict[str, Any]:
        """获取调度器统计信息"""
        return {
            'is_running': self.is_running,
            'total_services': len(self.services),
            'configured_services': list(self.services.keys()),
            'check_interval': self.check_interval,
            'cycle_count': self.cycle_count,
            'skipped_ticks': self.skipped_ticks,
            'alerts': self.alert_integrator.get_alert_stats()
        }
