"""状态查询HTTP接口

GET /health   执行一轮检查并返回整体结论，健康返回200，不健康返回503
GET /status   服务状态、最近告警和阈值配置
GET /alerts   最近接受的告警
GET /metrics  Prometheus文本格式指标
"""

import json
import logging
from datetime import datetime
from typing import Any, Optional

from aiohttp import web

from .monitor_scheduler import MonitorScheduler
from ..models.health_check import OverallStatus
from ..utils.metrics_exporter import create_registry, render_metrics


def json_response(data: Any, status: int = 200) -> web.Response:
    return web.Response(
        text=json.dumps(data, ensure_ascii=False, indent=2),
        status=status,
        content_type='application/json'
    )


def _parse_limit(request: web.Request, default: int) -> int:
    try:
        limit = int(request.query.get('limit', default))
    except ValueError:
        raise web.HTTPBadRequest(text='limit must be an integer')
    return max(limit, 0)


class StatusServer:
    """状态查询HTTP服务，所有接口只读取调度器的快照"""

    def __init__(self, scheduler: MonitorScheduler, host: str = '0.0.0.0',
                 port: int = 3002):
        self.scheduler = scheduler
        self.host = host
        self.port = port
        self.registry = create_registry(scheduler)
        self.logger = logging.getLogger(__name__)
        self._runner: Optional[web.AppRunner] = None

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get('/health', self.handle_health)
        app.router.add_get('/status', self.handle_status)
        app.router.add_get('/alerts', self.handle_alerts)
        app.router.add_get('/metrics', self.handle_metrics)
        return app

    async def start(self):
        """启动HTTP服务"""
        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        self.logger.info(f"状态查询服务已启动: http://{self.host}:{self.port}")

    async def stop(self):
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            self.logger.info("状态查询服务已停止")

    async def handle_health(self, request: web.Request) -> web.Response:
        """GET /health，?cached=1 时只返回最近一轮结果不重新探测"""
        if request.query.get('cached') in ('1', 'true'):
            cycle = self.scheduler.get_last_cycle()
        else:
            try:
                cycle = await self.scheduler.run_cycle()
            except Exception as e:
                self.logger.error(f"按需健康检查失败: {e}", exc_info=True)
                return json_response({
                    'timestamp': datetime.now().isoformat(),
                    'overall': 'error',
                    'error': str(e)
                }, status=500)

        status = 503 if cycle.overall == OverallStatus.UNHEALTHY else 200
        return json_response(cycle.to_dict(), status=status)

    async def handle_status(self, request: web.Request) -> web.Response:
        return json_response(self.scheduler.get_status_snapshot(
            alert_limit=_parse_limit(request, 10)))

    async def handle_alerts(self, request: web.Request) -> web.Response:
        return json_response({
            'timestamp': datetime.now().isoformat(),
            'alerts': self.scheduler.get_recent_alerts(_parse_limit(request, 50))
        })

    async def handle_metrics(self, request: web.Request) -> web.Response:
        body, content_type = render_metrics(self.registry)
        return web.Response(body=body, headers={'Content-Type': content_type})
