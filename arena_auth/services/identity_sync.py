"""
Propagation of verified Discord identities to the on-chain identity contract.

The contract client is an external collaborator; this module only decides
whether a write is needed and normalizes failures.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol, runtime_checkable

from arena_auth.core.errors import IdentitySyncError
from arena_auth.models.credentials import DiscordProfile
from arena_auth.models.identity import ChainProfile

logger = logging.getLogger(__name__)


@runtime_checkable
class IdentityContract(Protocol):
    """Read and write access to the wallet → Discord profile mapping."""

    async def get_profile(self, wallet_address: str) -> Optional[ChainProfile]: ...

    async def set_profile(self, wallet_address: str, profile: ChainProfile) -> str:
        """Write ``profile`` for ``wallet_address`` and return the transaction hash."""
        ...


class IdentitySyncService:
    """Write a Discord profile to the contract only when it changed."""

    def __init__(self, contract: IdentityContract) -> None:
        self._contract = contract

    async def sync(self, wallet_address: str, profile: DiscordProfile) -> Optional[str]:
        """Return the transaction hash, or ``None`` when no write was needed."""
        desired = ChainProfile.from_discord(profile)
        try:
            current = await self._contract.get_profile(wallet_address)
            if current == desired:
                logger.info(
                    "Profile is already up to date, skipping transaction",
                    extra={"wallet_address": wallet_address},
                )
                return None
            tx_hash = await self._contract.set_profile(wallet_address, desired)
        except IdentitySyncError:
            raise
        except Exception as exc:
            raise IdentitySyncError(
                f"Failed to update chain state for {wallet_address}: {exc}"
            ) from exc

        logger.info(
            "Updated on-chain profile",
            extra={"wallet_address": wallet_address, "tx_hash": tx_hash},
        )
        return tx_hash


__all__ = ["IdentityContract", "IdentitySyncService"]
