"""Individual checks run on every tick."""

from .health import HEALTH_ALERT_KEY, HealthCheckResult, HealthSnapshot, check_health
from .signer import SignerCheckResult, check_signer

__all__ = [
    "HEALTH_ALERT_KEY",
    "HealthCheckResult",
    "HealthSnapshot",
    "check_health",
    "SignerCheckResult",
    "check_signer",
]
