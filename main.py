#!/usr/bin/env python3
"""
服务健康监控与告警引擎入口

加载配置、组装调度器和状态查询服务，处理信号实现优雅关闭。
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional, Dict, Any

from service_monitor import __version__
from service_monitor.services.config_manager import ConfigManager
from service_monitor.services.monitor_scheduler import MonitorScheduler
from service_monitor.services.status_server import StatusServer
from service_monitor.utils.exceptions import ServiceMonitorError, ConfigError
from service_monitor.utils.log_manager import log_manager, get_logger


class ServiceMonitorApp:
    """监控引擎主应用程序类"""

    def __init__(self, config_path: str, overrides: Optional[Dict[str, Any]] = None):
        """初始化应用程序

        Args:
            config_path: 配置文件路径
            overrides: 命令行覆盖的全局配置项
        """
        self.config_path = config_path
        self.overrides = overrides or {}
        self.logger: Optional[logging.Logger] = None
        self.is_running = False
        self.shutdown_event = asyncio.Event()

        self.config_manager: Optional[ConfigManager] = None
        self.scheduler: Optional[MonitorScheduler] = None
        self.status_server: Optional[StatusServer] = None

    def initialize(self):
        """初始化应用程序组件

        Raises:
            ConfigError: 配置无效
        """
        self.config_manager = ConfigManager(self.config_path)
        self.config_manager.load_config()

        global_config = self.config_manager.get_global_config()
        global_config.update({k: v for k, v in self.overrides.items() if v is not None})

        self._configure_logging(global_config)
        self.logger = get_logger('main')
        self.logger.info("开始初始化监控引擎")

        self.scheduler = MonitorScheduler(
            services=self.config_manager.get_services(),
            thresholds=self.config_manager.get_alert_thresholds(),
            check_interval=global_config['check_interval'],
            check_timeout=global_config['check_timeout'],
            dedup_window=self.config_manager.get_dedup_window(),
            alert_retention=self.config_manager.get_alert_retention(),
            alert_configs=self.config_manager.get_alerts_config()
        )
        self.status_server = StatusServer(
            self.scheduler,
            host=global_config['listen_host'],
            port=global_config['listen_port']
        )

        self.logger.info("应用程序组件初始化完成")

    def _configure_logging(self, global_config: Dict[str, Any]):
        """配置日志系统

        Args:
            global_config: 全局配置
        """
        log_manager.configure({
            'log_level': global_config.get('log_level', 'INFO'),
            'log_file': global_config.get('log_file'),
            'max_file_size': global_config.get('max_log_size', 10 * 1024 * 1024),
            'backup_count': global_config.get('log_backup_count', 5),
            'enable_console': True
        })
        # 以模块名创建的记录器向上传递到包级记录器
        get_logger('service_monitor')

    async def start(self):
        """启动应用程序并等待关闭信号"""
        if self.is_running:
            self.logger.warning("应用程序已经在运行")
            return

        try:
            self.is_running = True
            await self.status_server.start()
            self.scheduler.start()
            self.logger.info("监控引擎启动完成")

            await self.shutdown_event.wait()
        finally:
            await self.stop()

    async def stop(self):
        """停止应用程序"""
        if not self.is_running:
            return

        self.logger.info("正在停止监控引擎...")
        self.is_running = False

        try:
            if self.scheduler:
                await self.scheduler.stop()
            if self.status_server:
                await self.status_server.stop()
            self.logger.info("监控引擎已停止")
        except Exception as e:
            self.logger.error(f"停止应用程序时发生异常: {e}", exc_info=True)
        finally:
            log_manager.cleanup()

    def shutdown(self):
        """触发应用程序关闭"""
        if self.logger:
            self.logger.info("收到关闭信号")
        self.shutdown_event.set()


def create_argument_parser() -> argparse.ArgumentParser:
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        prog='service-monitor',
        description='服务健康监控与告警引擎 - 定时探测HTTP/TCP服务并发送告警通知',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例用法:
  %(prog)s config.yaml                    # 使用指定配置文件启动监控
  %(prog)s --validate config.yaml         # 验证配置文件
  %(prog)s --check-once config.yaml       # 执行一轮检查后退出
  %(prog)s --test-alerts config.yaml      # 向所有告警渠道发送测试告警

环境变量:
  MONITOR_CHECK_INTERVAL, MONITOR_CHECK_TIMEOUT, MONITOR_CONSECUTIVE_FAILURES,
  MONITOR_ERROR_RATE, MONITOR_SLOW_RESPONSE_MS, MONITOR_DEDUP_WINDOW,
  MONITOR_ALERT_RETENTION, SLACK_WEBHOOK_URL, PAGERDUTY_INTEGRATION_KEY
        """
    )

    parser.add_argument('config_file', nargs='?', help='YAML配置文件路径')
    parser.add_argument('--version', '-v', action='version',
                        version=f'%(prog)s {__version__}')
    parser.add_argument('--validate', action='store_true', help='验证配置文件并退出')
    parser.add_argument('--test-alerts', action='store_true', help='测试告警渠道并退出')
    parser.add_argument('--check-once', action='store_true', help='执行一轮健康检查后退出')
    parser.add_argument('--log-level',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='日志级别（覆盖配置文件设置）')
    parser.add_argument('--log-file', help='日志文件路径（覆盖配置文件设置）')
    parser.add_argument('--host', help='状态查询服务监听地址')
    parser.add_argument('--port', type=int, help='状态查询服务监听端口')

    return parser


def validate_config_file(config_path: str) -> bool:
    """验证配置文件

    Args:
        config_path: 配置文件路径

    Returns:
        验证是否成功
    """
    try:
        config_manager = ConfigManager(config_path)
        config_manager.load_config()
    except ConfigError as e:
        print(f"❌ 配置文件验证失败: {e}")
        return False

    services = config_manager.get_services()
    alerts = config_manager.get_alerts_config()
    print("✅ 配置文件验证成功!")
    print(f"   - 服务数量: {len(services)}")
    for spec in services:
        critical = ", 关键" if spec.critical else ""
        print(f"     * {spec.name} ({spec.check_kind.value}{critical}) -> {spec.target}")
    print(f"   - 告警渠道数量: {len(alerts)}")
    for alert_config in alerts:
        print(f"     * {alert_config['name']} ({alert_config['type']})")
    return True


async def check_once(app: ServiceMonitorApp) -> bool:
    """执行一轮健康检查

    Returns:
        整体结论是否健康
    """
    cycle = await app.scheduler.run_cycle()
    await app.scheduler.alert_manager.drain()

    print(f"健康检查完成，共检查 {cycle.total} 个服务，整体状态: {cycle.overall.value}")
    for entry in cycle.services:
        if entry['healthy']:
            print(f"   ✅ {entry['service']}: 健康 (响应时间: {entry['response_time_ms']}ms)")
        else:
            print(f"   ❌ {entry['service']}: 不健康 - {entry['error']}")

    return cycle.overall.value == 'healthy'


async def main(argv=None) -> int:
    """主函数

    Returns:
        进程退出码
    """
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.config_file:
        parser.print_help()
        return 1

    if args.validate:
        return 0 if validate_config_file(args.config_file) else 1

    app = ServiceMonitorApp(args.config_file, overrides={
        'log_level': args.log_level,
        'log_file': args.log_file,
        'listen_host': args.host,
        'listen_port': args.port
    })

    try:
        app.initialize()
    except ConfigError as e:
        print(f"配置错误: {e.format_error()}", file=sys.stderr)
        return 1

    if args.check_once:
        return 0 if await check_once(app) else 1

    if args.test_alerts:
        success = await app.scheduler.alert_integrator.test_alert_system()
        print("✅ 告警渠道测试成功!" if success else "❌ 告警渠道测试失败!")
        return 0 if success else 1

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, app.shutdown)
        except NotImplementedError:
            # Windows 事件循环不支持 add_signal_handler
            signal.signal(sig, lambda signum, frame: app.shutdown())

    print(f"服务监控引擎 v{__version__} 已启动，按 Ctrl+C 停止")
    try:
        await app.start()
    except ServiceMonitorError as e:
        print(f"监控引擎错误: {e.format_error()}", file=sys.stderr)
        return 1
    return 0


def run():
    """命令行入口"""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
