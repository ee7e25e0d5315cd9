"""
Stacks signer monitor.

Watches the stake of a set of PoX signers against the current cycle's minimum
threshold, cross-checks chain heights between a node RPC and the indexing API,
and sends throttled alerts to a Discord webhook.

Quick Start:
    SIGNER_PUBLIC_KEYS=0x02ab...,0x03cd... \
    DISCORD_WEBHOOK_URL=https://discord.com/api/webhooks/... \
    CHECK_INTERVAL=300 API_URL=https://api.hiro.so REPEAT_CHECKS=true \
    signer-monitor
"""

__version__ = "1.0.0"

from .chain_api import Cycle, HeightPair, fetch_current_cycle, get_current_cycle
from .checks import check_health, check_signer
from .config import MonitorConfig, load_config
from .errors import (
    ConfigError,
    DispatchError,
    FetchError,
    NotFoundError,
    ParseError,
    SignerMonitorError,
)
from .monitor import SignerMonitor, TickReport
from .notifications import DispatchOutcome, DispatchStatus, NotificationThrottle, Notifier
from .scheduler import MonitorScheduler
from .stake import StakeVerdict, compare_stake, parse_ustx

__all__ = [
    # Version
    "__version__",
    # Chain API
    "Cycle",
    "HeightPair",
    "fetch_current_cycle",
    "get_current_cycle",
    # Checks
    "check_health",
    "check_signer",
    # Config
    "MonitorConfig",
    "load_config",
    # Errors
    "ConfigError",
    "DispatchError",
    "FetchError",
    "NotFoundError",
    "ParseError",
    "SignerMonitorError",
    # Orchestration
    "SignerMonitor",
    "TickReport",
    "MonitorScheduler",
    # Notifications
    "DispatchOutcome",
    "DispatchStatus",
    "NotificationThrottle",
    "Notifier",
    # Stake
    "StakeVerdict",
    "compare_stake",
    "parse_ustx",
]
