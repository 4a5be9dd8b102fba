"""告警模块"""

from .base import BaseAlerter
from .evaluator import AlertEvaluator, AlertThresholds
from .http_alerter import HTTPAlerter
from .integrator import AlertIntegrator
from .ledger import AlertLedger
from .manager import AlertManager
from .pagerduty_alerter import PagerDutyAlerter
from .slack_alerter import SlackAlerter

__all__ = [
    'BaseAlerter',
    'AlertEvaluator',
    'AlertThresholds',
    'AlertIntegrator',
    'AlertLedger',
    'AlertManager',
    'HTTPAlerter',
    'SlackAlerter',
    'PagerDutyAlerter'
]
