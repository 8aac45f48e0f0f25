"""
Models exchanged with the on-chain Discord identity contract.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from arena_auth.models.credentials import DiscordProfile


class ChainProfile(BaseModel):
    """Discord profile as stored by the identity contract for a wallet."""

    user_id: str
    username: str
    avatar_hash: Optional[str] = None

    @classmethod
    def from_discord(cls, profile: DiscordProfile) -> "ChainProfile":
        return cls(
            user_id=profile.id,
            username=profile.username,
            avatar_hash=profile.avatar,
        )


__all__ = ["ChainProfile"]
