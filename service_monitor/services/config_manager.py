"""配置管理器

从YAML文件加载服务列表和运行参数，再用环境变量覆盖运行参数和告警渠道凭据。
"""

import os
from datetime import timedelta
from typing import Dict, Any, Optional, List, Mapping

import yaml

from ..alerts.evaluator import AlertThresholds
from ..models.health_check import CheckKind, ServiceSpec
from ..utils.config_validator import ConfigValidator
from ..utils.exceptions import ConfigError, ErrorCode
from ..utils.log_manager import get_logger

DEFAULT_GLOBAL_CONFIG: Dict[str, Any] = {
    'check_interval': 30,
    'check_timeout': 5,
    'log_level': 'INFO',
    'listen_host': '0.0.0.0',
    'listen_port': 3002,
}

DEFAULT_THRESHOLDS: Dict[str, Any] = {
    'consecutive_failures': 3,
    'error_rate': 0.10,
    'min_checks_for_error_rate': 10,
    'slow_response_ms': 5000,
    'dedup_window': 300,
    'alert_retention': 3600,
}

# 环境变量 -> (配置段, 配置项, 类型)
ENV_OVERRIDES = {
    'MONITOR_CHECK_INTERVAL': ('global', 'check_interval', float),
    'MONITOR_CHECK_TIMEOUT': ('global', 'check_timeout', float),
    'MONITOR_LOG_LEVEL': ('global', 'log_level', str),
    'MONITOR_LOG_FILE': ('global', 'log_file', str),
    'MONITOR_LISTEN_HOST': ('global', 'listen_host', str),
    'MONITOR_LISTEN_PORT': ('global', 'listen_port', int),
    'MONITOR_CONSECUTIVE_FAILURES': ('thresholds', 'consecutive_failures', int),
    'MONITOR_ERROR_RATE': ('thresholds', 'error_rate', float),
    'MONITOR_MIN_CHECKS_FOR_ERROR_RATE': ('thresholds', 'min_checks_for_error_rate', int),
    'MONITOR_SLOW_RESPONSE_MS': ('thresholds', 'slow_response_ms', float),
    'MONITOR_DEDUP_WINDOW': ('thresholds', 'dedup_window', float),
    'MONITOR_ALERT_RETENTION': ('thresholds', 'alert_retention', float),
}


class ConfigManager:
    """配置管理器，负责YAML配置文件的加载、环境变量覆盖和验证"""

    def __init__(self, config_path: str, environ: Optional[Mapping[str, str]] = None):
        """
        初始化配置管理器

        Args:
            config_path: 配置文件路径
            environ: 环境变量，默认使用 os.environ
        """
        self.config_path = config_path
        self.environ = os.environ if environ is None else environ
        self.config: Dict[str, Any] = {}
        self.logger = get_logger('config_manager')

    def load_config(self) -> Dict[str, Any]:
        """
        加载配置

        Returns:
            Dict[str, Any]: 合并默认值和环境变量后的配置字典

        Raises:
            ConfigError: 配置加载或验证失败
        """
        self.logger.info(f"开始加载配置文件: {self.config_path}")

        try:
            with open(self.config_path, 'r', encoding='utf-8') as file:
                raw_config = yaml.safe_load(file)
        except FileNotFoundError:
            raise ConfigError(f"配置文件不存在: {self.config_path}",
                              ErrorCode.CONFIG_FILE_NOT_FOUND, config_path=self.config_path)
        except PermissionError:
            raise ConfigError(f"没有权限读取配置文件: {self.config_path}",
                              config_path=self.config_path)
        except yaml.YAMLError as e:
            raise ConfigError(f"YAML格式错误: {e}", ErrorCode.CONFIG_PARSE_ERROR,
                              config_path=self.config_path)

        if raw_config is None:
            raise ConfigError("配置文件为空", config_path=self.config_path)
        if not isinstance(raw_config, dict):
            raise ConfigError("配置文件根节点必须是字典类型", config_path=self.config_path)

        config = {
            'global': {**DEFAULT_GLOBAL_CONFIG, **(raw_config.get('global') or {})},
            'thresholds': {**DEFAULT_THRESHOLDS, **(raw_config.get('thresholds') or {})},
            'services': raw_config.get('services') or {},
            'alerts': list(raw_config.get('alerts') or []),
        }
        self._apply_env_overrides(config)
        self._validate_config(config)

        self.config = config
        self.logger.info(
            f"配置验证成功，包含 {len(config['services'])} 个服务和 "
            f"{len(config['alerts'])} 个告警渠道")
        return self.config

    def _apply_env_overrides(self, config: Dict[str, Any]) -> None:
        """
        应用环境变量覆盖

        Args:
            config: 配置字典，原地修改

        Raises:
            ConfigError: 环境变量值无法转换
        """
        for env_name, (section, key, value_type) in ENV_OVERRIDES.items():
            raw_value = self.environ.get(env_name)
            if raw_value is None or raw_value == '':
                continue
            try:
                config[section][key] = value_type(raw_value)
            except ValueError:
                raise ConfigError(f"环境变量 {env_name} 的值无效: {raw_value}")
            self.logger.debug(f"环境变量 {env_name} 覆盖 {section}.{key}")

        # 渠道凭据缺失时对应渠道不启用
        slack_url = self.environ.get('SLACK_WEBHOOK_URL')
        if slack_url:
            config['alerts'].append({'name': 'slack', 'type': 'slack', 'url': slack_url})

        routing_key = self.environ.get('PAGERDUTY_INTEGRATION_KEY')
        if routing_key:
            pagerduty_config = {'name': 'pagerduty', 'type': 'pagerduty',
                                'routing_key': routing_key}
            events_url = self.environ.get('PAGERDUTY_EVENTS_URL')
            if events_url:
                pagerduty_config['url'] = events_url
            config['alerts'].append(pagerduty_config)

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """
        验证配置内容

        Args:
            config: 配置字典

        Raises:
            ConfigError: 配置验证失败
        """
        ConfigValidator.validate_global_config(config['global'])
        ConfigValidator.validate_thresholds(config['thresholds'])

        services = config['services']
        if not isinstance(services, dict):
            raise ConfigError("services配置必须是字典类型")
        if not services:
            raise ConfigError("至少需要配置一个服务")
        for service_name, service_config in services.items():
            ConfigValidator.validate_service_config(service_name, service_config)

        for alert_config in config['alerts']:
            ConfigValidator.validate_alert_config(alert_config)

    def get_global_config(self) -> Dict[str, Any]:
        return self.config.get('global', dict(DEFAULT_GLOBAL_CONFIG))

    def get_thresholds_config(self) -> Dict[str, Any]:
        return self.config.get('thresholds', dict(DEFAULT_THRESHOLDS))

    def get_alerts_config(self) -> List[Dict[str, Any]]:
        return self.config.get('alerts', [])

    def get_services(self) -> List[ServiceSpec]:
        """
        获取服务定义列表

        Returns:
            List[ServiceSpec]: 服务定义，顺序与配置文件一致
        """
        specs = []
        for name, service_config in self.config.get('services', {}).items():
            check_kind = CheckKind(service_config.get('type', 'http'))
            target = service_config.get('url')
            if target is None:
                target = f"{service_config['host']}:{service_config['port']}"
            specs.append(ServiceSpec(
                name=name,
                check_kind=check_kind,
                target=target,
                critical=service_config.get('critical', False)
            ))
        return specs

    def get_alert_thresholds(self) -> AlertThresholds:
        thresholds = self.get_thresholds_config()
        return AlertThresholds(
            consecutive_failures=thresholds['consecutive_failures'],
            error_rate=thresholds['error_rate'],
            min_checks_for_error_rate=thresholds['min_checks_for_error_rate'],
            slow_response_ms=thresholds['slow_response_ms']
        )

    def get_dedup_window(self) -> timedelta:
        return timedelta(seconds=self.get_thresholds_config()['dedup_window'])

    def get_alert_retention(self) -> timedelta:
        return timedelta(seconds=self.get_thresholds_config()['alert_retention'])
