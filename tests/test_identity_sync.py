from __future__ import annotations

from typing import Optional

import pytest

from arena_auth.core.errors import IdentitySyncError
from arena_auth.models.credentials import DiscordProfile
from arena_auth.models.identity import ChainProfile
from arena_auth.services.identity_sync import IdentityContract, IdentitySyncService


class FakeContract:
    def __init__(
        self,
        current: Optional[ChainProfile] = None,
        *,
        error: Optional[Exception] = None,
    ) -> None:
        self.current = current
        self.error = error
        self.writes: list[tuple[str, ChainProfile]] = []

    async def get_profile(self, wallet_address: str) -> Optional[ChainProfile]:
        return self.current

    async def set_profile(self, wallet_address: str, profile: ChainProfile) -> str:
        if self.error is not None:
            raise self.error
        self.writes.append((wallet_address, profile))
        self.current = profile
        return "0xfeed"


PROFILE = DiscordProfile(id="4242", username="arena", avatar="a1b2")


def test_fake_contract_satisfies_protocol() -> None:
    assert isinstance(FakeContract(), IdentityContract)


@pytest.mark.asyncio
async def test_sync_writes_when_wallet_has_no_profile() -> None:
    contract = FakeContract()

    tx_hash = await IdentitySyncService(contract).sync("0xwallet", PROFILE)

    assert tx_hash == "0xfeed"
    assert contract.writes == [
        ("0xwallet", ChainProfile(user_id="4242", username="arena", avatar_hash="a1b2"))
    ]


@pytest.mark.asyncio
async def test_sync_skips_unchanged_profile() -> None:
    contract = FakeContract(ChainProfile.from_discord(PROFILE))

    assert await IdentitySyncService(contract).sync("0xwallet", PROFILE) is None
    assert contract.writes == []


@pytest.mark.asyncio
async def test_sync_writes_when_avatar_changed() -> None:
    contract = FakeContract(
        ChainProfile(user_id="4242", username="arena", avatar_hash="old")
    )

    assert await IdentitySyncService(contract).sync("0xwallet", PROFILE) == "0xfeed"
    assert contract.writes[0][1].avatar_hash == "a1b2"


@pytest.mark.asyncio
async def test_contract_failures_are_wrapped() -> None:
    contract = FakeContract(error=RuntimeError("execution reverted"))

    with pytest.raises(IdentitySyncError, match="execution reverted"):
        await IdentitySyncService(contract).sync("0xwallet", PROFILE)
