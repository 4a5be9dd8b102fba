"""告警渠道基类"""

from abc import ABC, abstractmethod
from typing import Dict, Any

from ..models.health_check import Alert


class BaseAlerter(ABC):
    """告警渠道抽象基类"""

    def __init__(self, name: str, config: Dict[str, Any]):
        """
        初始化告警渠道

        Args:
            name: 渠道名称
            config: 渠道配置参数
        """
        self.name = name
        self.config = config
        self.alerter_type = self.__class__.__name__.replace('Alerter', '').lower()

    @abstractmethod
    async def send_alert(self, alert: Alert) -> bool:
        """
        投递一条告警，每条告警只尝试一次

        Args:
            alert: 告警事件

        Returns:
            bool: 投递是否成功
        """
        pass

    @abstractmethod
    def validate_config(self) -> bool:
        """
        验证配置参数是否有效

        Returns:
            bool: 配置是否有效
        """
        pass

    def get_timeout(self) -> float:
        """
        获取超时时间配置

        Returns:
            float: 超时时间（秒）
        """
        return self.config.get('timeout', 10)
