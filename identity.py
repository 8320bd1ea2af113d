"""
Identity provider: yields the signed-in user id, None for anonymous, or stays
unresolved while the session is still being restored.
"""

import asyncio
from typing import Optional


class IdentityProvider:
    def __init__(self):
        self._user_id: Optional[str] = None
        self._ready = asyncio.Event()

    @classmethod
    def resolved(cls, user_id: Optional[str]) -> "IdentityProvider":
        provider = cls()
        provider.resolve(user_id)
        return provider

    @property
    def is_resolved(self) -> bool:
        return self._ready.is_set()

    @property
    def current(self) -> Optional[str]:
        """Current user id; None both when anonymous and when still unresolved."""
        return self._user_id

    def resolve(self, user_id: Optional[str]) -> None:
        self._user_id = user_id or None
        self._ready.set()

    async def wait(self) -> Optional[str]:
        """Wait out the initialization period, then return the user id or None."""
        await self._ready.wait()
        return self._user_id
