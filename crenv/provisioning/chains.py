"""
crenv Provisioning - Blockchain bring-up.

Chains start sequentially, before anything else: node groups need their
RPC endpoints. Each chain must answer within a hard readiness timeout.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from loguru import logger

from crenv.config.models import BlockchainInput
from crenv.core.context import ProvisioningContext
from crenv.core.exceptions import BlockchainStartError, ChainSelectorNotFoundError
from crenv.provisioning.models import BlockchainOutput
from crenv.providers.base import BlockchainHandle, BlockchainProvider

# Selectors of the local development chains
KNOWN_CHAIN_SELECTORS: dict[int, int] = {
    1: 5009297550715157269,
    1337: 3379446385462418246,
    2337: 12922642891491394802,
}

DEFAULT_READINESS_TIMEOUT = 60.0
DEFAULT_POLL_INTERVAL = 1.0


def resolve_chain_selector(chain_id: int, reported: int | None = None) -> int:
    """
    Chain selector for a chain ID.

    Raises:
        ChainSelectorNotFoundError: Unknown chain and the provider reported none.
    """
    if reported:
        return reported
    try:
        return KNOWN_CHAIN_SELECTORS[chain_id]
    except KeyError:
        raise ChainSelectorNotFoundError(chain_id) from None


async def wait_until_ready(
    handle: BlockchainHandle,
    timeout: float = DEFAULT_READINESS_TIMEOUT,
    interval: float = DEFAULT_POLL_INTERVAL,
) -> None:
    """
    Poll a chain until it answers.

    Raises:
        BlockchainStartError: Not ready within ``timeout`` seconds.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        if await handle.is_ready():
            return
        if loop.time() + interval > deadline:
            raise BlockchainStartError(
                f"blockchain {handle.chain_id} not ready after {timeout:.0f}s",
                {"chain_id": handle.chain_id, "rpc": handle.rpc_http_url},
            )
        await asyncio.sleep(interval)


async def start_blockchains(
    provider: BlockchainProvider,
    specs: Sequence[BlockchainInput],
    deployer_private_key: str,
    ctx: ProvisioningContext,
    readiness_timeout: float = DEFAULT_READINESS_TIMEOUT,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> list[BlockchainOutput]:
    """
    Start every configured chain, home chain first.

    Returns:
        One BlockchainOutput per chain, in configuration order.
    """
    outputs: list[BlockchainOutput] = []
    for spec in specs:
        ctx.token.raise_if_cancelled()

        logger.info(f"⛓️ Starting {spec.type} chain {spec.chain_id}")
        try:
            handle = await provider.start(spec, deployer_private_key)
        except Exception as e:
            raise BlockchainStartError(
                f"failed to start blockchain {spec.chain_id}: {e}",
                {"chain_id": spec.chain_id},
            ) from e

        await wait_until_ready(handle, readiness_timeout, poll_interval)
        selector = resolve_chain_selector(spec.chain_id, handle.chain_selector)
        outputs.append(
            BlockchainOutput(
                chain_id=spec.chain_id,
                chain_selector=selector,
                rpc_http_url=handle.rpc_http_url,
                rpc_ws_url=handle.rpc_ws_url,
                deployer_address=handle.deployer_address,
                read_only=spec.read_only,
                contract_addresses=dict(handle.contract_addresses),
            )
        )
        logger.debug(f"Chain {spec.chain_id} ready at {handle.rpc_http_url} (selector {selector})")
    return outputs
