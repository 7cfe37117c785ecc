"""Lending adapter reader — on-chain position and configuration views."""
from __future__ import annotations

import logging

from eth_abi.exceptions import DecodingError

from ...errors import ChainReadError
from ...interfaces.chain import ChainClient
from ...models import PositionInfo
from . import calls

logger = logging.getLogger(__name__)


class LendingAdapterReader:
    """Read positions and bindings of the private supply adapter via eth_call."""

    def __init__(self, chain_client: ChainClient, adapter_address: str) -> None:
        self._client = chain_client
        self._address = adapter_address

    @property
    def address(self) -> str:
        return self._address

    async def _call(self, name: str, *args) -> tuple:
        data = await self._client.eth_call(self._address, calls.encode_call(name, *args))
        try:
            return calls.decode_result(name, data)
        except (DecodingError, ValueError) as e:
            raise ChainReadError(
                f"Could not decode {name} from adapter {self._address}: {e}"
            ) from e

    async def get_owner_position_ids(
        self, owner_commitment: str, offset: int, limit: int
    ) -> tuple[list[int], int]:
        ids, total = await self._call("getOwnerPositionIds", owner_commitment, offset, limit)
        return list(ids), int(total)

    async def get_all_owner_position_ids(
        self, owner_commitment: str, page_size: int = 500
    ) -> list[int]:
        """Enumerate every position id for an owner commitment (paginated)."""
        all_ids: list[int] = []
        offset = 0
        while True:
            ids, total = await self.get_owner_position_ids(owner_commitment, offset, page_size)
            all_ids.extend(ids)
            offset += len(ids)
            if not ids or offset >= total:
                break
        return all_ids

    async def get_position(self, position_id: int) -> PositionInfo:
        owner, vault, token, amount, auth_hash = await self._call("positions", position_id)
        return PositionInfo(
            position_id=int(position_id),
            owner_commitment=owner,
            vault=vault,
            token=token,
            amount=int(amount),
            auth_hash=auth_hash,
        )

    async def privacy_executor(self) -> str:
        (address,) = await self._call("privacyExecutor")
        return address

    async def supply_token(self) -> str:
        (address,) = await self._call("supplyToken")
        return address

    async def is_borrow_token_allowed(self, token: str) -> bool:
        (allowed,) = await self._call("isBorrowTokenAllowed", token)
        return bool(allowed)
