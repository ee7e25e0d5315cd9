from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from ..chain_api import get_signer_stake
from ..errors import FetchError, NotFoundError
from ..notifications.notifier import DispatchOutcome, Notifier
from ..stake import StakeVerdict, compare_stake, format_ustx


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SignerCheckResult:
    signer_public_key: str
    ok: bool
    reason: str  # ok | stake_below_minimum | not_found | fetch_failed
    verdict: StakeVerdict | None = None
    alert: DispatchOutcome | None = None
    details: dict[str, Any] = field(default_factory=dict)


def _build_not_found_message(signer_public_key: str, cycle_id: int) -> str:
    return f"Error: Signer {signer_public_key} not found in cycle {cycle_id}"


def _build_fetch_failed_message(signer_public_key: str, cycle_id: int, reason: str) -> str:
    return f"Error: Failed to fetch signer for cycle {cycle_id}: {reason} (signer {signer_public_key})"


def _build_low_stake_message(signer_public_key: str, observed: int, required: int, verdict: StakeVerdict) -> str:
    pct = f" ({verdict.difference_pct}%)" if verdict.difference_pct is not None else ""
    return (
        f"Alert: The signer STX stake for signer {signer_public_key} is below the minimum. "
        f"Current stake: {format_ustx(observed)}, "
        f"Minimum stake: {format_ustx(required)}, "
        f"Difference: {verdict.difference_abs} uSTX{pct}"
    )


async def check_signer(
    *,
    http_client: httpx.AsyncClient,
    notifier: Notifier,
    api_url: str,
    signer_public_key: str,
    cycle_id: int,
    min_threshold_ustx: int,
) -> SignerCheckResult:
    log = logger.bind(signer=signer_public_key, cycle_id=cycle_id)

    try:
        staked = await get_signer_stake(
            http_client,
            api_url,
            cycle_id=cycle_id,
            signer_public_key=signer_public_key,
        )
    except NotFoundError:
        message = _build_not_found_message(signer_public_key, cycle_id)
        log.error("Signer not found in cycle")
        outcome = await notifier.alert(signer_public_key, message)
        return SignerCheckResult(signer_public_key, ok=False, reason="not_found", alert=outcome)
    except FetchError as e:
        message = _build_fetch_failed_message(signer_public_key, cycle_id, str(e))
        log.error("Failed to fetch signer", error=str(e))
        outcome = await notifier.alert(signer_public_key, message)
        return SignerCheckResult(
            signer_public_key,
            ok=False,
            reason="fetch_failed",
            alert=outcome,
            details={"error": str(e)},
        )

    verdict = compare_stake(staked, min_threshold_ustx)
    log.info(
        "Signer stake",
        current=format_ustx(staked),
        minimum=format_ustx(min_threshold_ustx),
        difference=verdict.difference_abs,
        difference_pct=str(verdict.difference_pct) if verdict.difference_pct is not None else None,
    )
    details = {"stacked_amount": staked, "min_threshold_ustx": min_threshold_ustx}

    if not verdict.deficient:
        log.info("Stake is within acceptable range")
        return SignerCheckResult(signer_public_key, ok=True, reason="ok", verdict=verdict, details=details)

    message = _build_low_stake_message(signer_public_key, staked, min_threshold_ustx, verdict)
    log.warning("Stake below minimum")
    outcome = await notifier.alert(signer_public_key, message)
    return SignerCheckResult(
        signer_public_key,
        ok=False,
        reason="stake_below_minimum",
        verdict=verdict,
        alert=outcome,
        details=details,
    )
