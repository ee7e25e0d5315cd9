from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Optional, Type, TypeVar, Union

import httpx
import structlog
from pydantic import BaseModel, StrictInt, StrictStr, ValidationError

from .errors import FetchError, NotFoundError
from .stake import parse_ustx


logger = structlog.get_logger(__name__)

# Statuses the signer endpoint uses for "not registered in this cycle".
SIGNER_NOT_FOUND_STATUS_CODES = frozenset({400, 404})

UstxAmount = Union[StrictInt, StrictStr]

_Model = TypeVar("_Model", bound=BaseModel)


class CurrentCycleSchema(BaseModel):
    id: StrictInt
    min_threshold_ustx: UstxAmount


class PoxResponse(BaseModel):
    current_cycle: CurrentCycleSchema


class SignerResponse(BaseModel):
    stacked_amount: UstxAmount


class NodeInfoResponse(BaseModel):
    burn_block_height: StrictInt
    stacks_tip_height: StrictInt


class ChainTipSchema(BaseModel):
    burn_block_height: StrictInt
    block_height: StrictInt


class ExtendedStatusResponse(BaseModel):
    chain_tip: ChainTipSchema


@dataclass(frozen=True)
class Cycle:
    id: int
    min_threshold_ustx: int


@dataclass(frozen=True)
class HeightPair:
    burn_height: int
    tip_height: int


def _url(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}{path}"


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors()[:3]:
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


async def _get_json(client: httpx.AsyncClient, url: str) -> Any:
    try:
        resp = await client.get(url)
        resp.raise_for_status()
    except httpx.HTTPStatusError:
        raise
    except httpx.HTTPError as e:
        raise FetchError(f"{type(e).__name__}: {e}") from e
    try:
        return resp.json()
    except ValueError as e:
        raise FetchError(f"Invalid JSON from {url}: {e}") from e


async def _get_model(client: httpx.AsyncClient, url: str, model: Type[_Model]) -> _Model:
    try:
        data = await _get_json(client, url)
    except httpx.HTTPStatusError as e:
        raise FetchError(f"HTTP {e.response.status_code} from {url}") from e
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise FetchError(f"Unexpected response shape from {url}: {_describe_validation_error(e)}") from e


async def get_current_cycle(client: httpx.AsyncClient, api_url: str) -> Cycle:
    body = await _get_model(client, _url(api_url, "/v2/pox"), PoxResponse)
    return Cycle(
        id=body.current_cycle.id,
        min_threshold_ustx=parse_ustx(body.current_cycle.min_threshold_ustx),
    )


async def fetch_current_cycle(client: httpx.AsyncClient, api_url: str) -> Optional[Cycle]:
    """
    Like `get_current_cycle`, but returns None instead of raising.
    """
    try:
        return await get_current_cycle(client, api_url)
    except FetchError as e:
        logger.error("Failed to fetch current cycle", error=str(e))
        return None


async def get_signer_stake(
    client: httpx.AsyncClient,
    api_url: str,
    *,
    cycle_id: int,
    signer_public_key: str,
) -> int:
    url = _url(api_url, f"/extended/v2/pox/cycles/{cycle_id}/signers/{signer_public_key}")
    try:
        data = await _get_json(client, url)
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        if status in SIGNER_NOT_FOUND_STATUS_CODES:
            raise NotFoundError(f"Signer {signer_public_key} not found in cycle {cycle_id}") from e
        raise FetchError(f"HTTP {status} from {url}") from e
    try:
        body = SignerResponse.model_validate(data)
    except ValidationError as e:
        raise FetchError(f"Unexpected response shape from {url}: {_describe_validation_error(e)}") from e
    return parse_ustx(body.stacked_amount)


async def get_node_heights(client: httpx.AsyncClient, rpc_url: str) -> HeightPair:
    body = await _get_model(client, _url(rpc_url, "/v2/info"), NodeInfoResponse)
    return HeightPair(burn_height=body.burn_block_height, tip_height=body.stacks_tip_height)


async def get_api_heights(client: httpx.AsyncClient, api_url: str) -> HeightPair:
    body = await _get_model(client, _url(api_url, "/extended"), ExtendedStatusResponse)
    return HeightPair(burn_height=body.chain_tip.burn_block_height, tip_height=body.chain_tip.block_height)


async def get_height_pairs(
    client: httpx.AsyncClient, *, rpc_url: str, api_url: str
) -> tuple[HeightPair | FetchError, HeightPair | FetchError]:
    """
    Query both sources concurrently. Each slot holds either the heights or the FetchError.
    """
    rpc, api = await asyncio.gather(
        get_node_heights(client, rpc_url),
        get_api_heights(client, api_url),
        return_exceptions=True,
    )
    for res in (rpc, api):
        if isinstance(res, BaseException) and not isinstance(res, FetchError):
            raise res
    return rpc, api
