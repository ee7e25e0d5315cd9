from __future__ import annotations

from dataclasses import dataclass, field

import httpx
import structlog

from ..chain_api import HeightPair, get_height_pairs
from ..errors import FetchError
from ..notifications.notifier import DispatchOutcome, Notifier


logger = structlog.get_logger(__name__)

# Health alerts are not tied to a signer and share one throttle bucket.
HEALTH_ALERT_KEY = "N/A"


@dataclass(frozen=True)
class HealthSnapshot:
    rpc_burn_height: int
    rpc_tip_height: int
    api_burn_height: int
    api_tip_height: int

    @classmethod
    def from_pairs(cls, rpc: HeightPair, api: HeightPair) -> "HealthSnapshot":
        return cls(
            rpc_burn_height=rpc.burn_height,
            rpc_tip_height=rpc.tip_height,
            api_burn_height=api.burn_height,
            api_tip_height=api.tip_height,
        )

    @property
    def burn_heights_match(self) -> bool:
        return self.rpc_burn_height == self.api_burn_height

    @property
    def tip_heights_match(self) -> bool:
        return self.rpc_tip_height == self.api_tip_height


@dataclass(frozen=True)
class HealthCheckResult:
    ok: bool
    reason: str  # ok | fetch_failed | height_mismatch
    snapshot: HealthSnapshot | None = None
    mismatches: list[str] = field(default_factory=list)
    alerts: list[DispatchOutcome] = field(default_factory=list)


def _build_fetch_failed_message(rpc_error: FetchError | None, api_error: FetchError | None) -> str:
    lines = ["Error: Failed to fetch chain heights for health check"]
    if rpc_error is not None:
        lines.append(f"RPC /v2/info: {rpc_error}")
    if api_error is not None:
        lines.append(f"API /extended: {api_error}")
    return "\n".join(lines)


def _build_burn_mismatch_message(snap: HealthSnapshot) -> str:
    return (
        "Alert: Burn block height mismatch between RPC and API. "
        f"RPC burn_block_height: {snap.rpc_burn_height}, API burn_block_height: {snap.api_burn_height}"
    )


def _build_tip_mismatch_message(snap: HealthSnapshot) -> str:
    return (
        "Alert: Stacks tip height mismatch between RPC and API. "
        f"RPC stacks_tip_height: {snap.rpc_tip_height}, API block_height: {snap.api_tip_height}"
    )


async def check_health(
    *,
    http_client: httpx.AsyncClient,
    notifier: Notifier,
    rpc_url: str,
    api_url: str,
) -> HealthCheckResult:
    rpc, api = await get_height_pairs(http_client, rpc_url=rpc_url, api_url=api_url)

    rpc_error = rpc if isinstance(rpc, FetchError) else None
    api_error = api if isinstance(api, FetchError) else None
    if rpc_error is not None or api_error is not None:
        logger.error(
            "Health check fetch failed",
            rpc_error=str(rpc_error) if rpc_error else None,
            api_error=str(api_error) if api_error else None,
        )
        outcome = await notifier.alert(HEALTH_ALERT_KEY, _build_fetch_failed_message(rpc_error, api_error))
        return HealthCheckResult(ok=False, reason="fetch_failed", alerts=[outcome])

    snap = HealthSnapshot.from_pairs(rpc, api)
    logger.info(
        "Chain heights",
        rpc_burn_height=snap.rpc_burn_height,
        api_burn_height=snap.api_burn_height,
        rpc_tip_height=snap.rpc_tip_height,
        api_tip_height=snap.api_tip_height,
    )

    mismatches: list[str] = []
    lines: list[str] = []
    if not snap.burn_heights_match:
        mismatches.append("burn_block_height")
        lines.append(_build_burn_mismatch_message(snap))
        logger.warning("Burn block height mismatch")
    if not snap.tip_heights_match:
        mismatches.append("tip_height")
        lines.append(_build_tip_mismatch_message(snap))
        logger.warning("Stacks tip height mismatch")

    if not mismatches:
        return HealthCheckResult(ok=True, reason="ok", snapshot=snap)

    # One alert per tick: both mismatches share the health throttle key.
    outcome = await notifier.alert(HEALTH_ALERT_KEY, "\n".join(lines))
    return HealthCheckResult(
        ok=False,
        reason="height_mismatch",
        snapshot=snap,
        mismatches=mismatches,
        alerts=[outcome],
    )
