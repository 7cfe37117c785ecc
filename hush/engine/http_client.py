"""HTTP client for the privacy engine bridge service."""
from __future__ import annotations

import asyncio
import logging
import ssl
from dataclasses import dataclass, field
from typing import Any, Sequence

import aiohttp
import certifi

from ..config import EngineConfig
from ..errors import ActionRejectedError, EngineUnavailableError, RevertReason, classify_revert
from ..identity import derive_identity_address, normalize_seed
from ..interfaces.signer import Signer
from ..models import EngineCapabilities, FeeQuote, Operation

logger = logging.getLogger(__name__)

_TX_HASH_KEYS = ("txHash", "transactionHash", "hash")


@dataclass(frozen=True)
class HttpEngineHandle:
    """Bridge-side session id plus the capabilities negotiated at init."""

    session_id: str
    capabilities: EngineCapabilities = field(default_factory=EngineCapabilities)

    @property
    def session_ref(self) -> str:
        return self.session_id


def extract_tx_hash(result: Any) -> str:
    """Find the transaction hash in a bridge result, however it is nested."""
    if isinstance(result, str) and result.startswith("0x"):
        return result
    if isinstance(result, dict):
        for key in _TX_HASH_KEYS:
            value = result.get(key)
            if isinstance(value, str) and value:
                return value
        for nested in ("transaction", "receipt", "result"):
            if nested in result:
                found = extract_tx_hash(result[nested])
                if found:
                    return found
    return ""


def _parse_capabilities(data: dict[str, Any]) -> EngineCapabilities:
    caps = data.get("capabilities") or {}
    return EngineCapabilities(
        spendable_balance=bool(caps.get("spendableBalance", True)),
        fee_quotes=bool(caps.get("feeQuotes", True)),
        runtime_signer_address=data.get("runtimeSignerAddress"),
    )


def _parse_amount(value: Any, field_name: str) -> int:
    """Integer amount from a bridge field sent as a JSON integer or decimal string."""
    if isinstance(value, (int, str)) and not isinstance(value, bool):
        try:
            return int(value)
        except ValueError:
            pass
    raise EngineUnavailableError(f"Privacy engine returned a malformed {field_name}: {value!r}.")


def _parse_reason(value: Any, message: str) -> RevertReason:
    if isinstance(value, str):
        try:
            return RevertReason(value.lower())
        except ValueError:
            pass
    # Older bridges send only the raw revert text
    return classify_revert(message)


def _ops_payload(operations: Sequence[Operation]) -> list[dict[str, Any]]:
    return [
        {"contract": op.contract, "callDataHex": op.calldata, "invokeWallet": op.invoke_wallet}
        for op in operations
    ]


class HttpPrivacyEngine:
    """Privacy engine reached through a JSON bridge at ``POST {base_url}/v1/<call>``."""

    def __init__(self, config: EngineConfig, chain_id: int) -> None:
        self.base_url = config.base_url.rstrip("/")
        self.timeout = config.timeout
        self.chain_id = chain_id

    async def _post(self, call: str, payload: dict[str, Any]) -> dict[str, Any]:
        if not self.base_url:
            raise EngineUnavailableError(
                "Privacy engine URL is not configured.", hint="Set HUSH_ENGINE_URL."
            )

        url = f"{self.base_url}/v1/{call}"
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.post(
                    url,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    data = await response.json(content_type=None)
                    status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError) as e:
            raise EngineUnavailableError(
                f"Privacy engine request {call} failed: {e}.",
                hint=f"Is the engine bridge running at {self.base_url}?",
            ) from e

        if not isinstance(data, dict):
            raise EngineUnavailableError(f"Privacy engine returned an invalid {call} response.")

        error = data.get("error")
        if error:
            if isinstance(error, dict):
                message = str(error.get("message") or error.get("reason") or "rejected")
                reason = _parse_reason(error.get("reason"), message)
            else:
                message = str(error)
                reason = classify_revert(message)
            logger.debug("Engine %s rejected (%s): %s", call, reason.value, message)
            raise ActionRejectedError(message, reason=reason)

        if status != 200:
            raise EngineUnavailableError(f"Privacy engine {call} failed: HTTP {status}.")

        return data

    def derive_identity(self, seed: str) -> str:
        return derive_identity_address(seed)

    async def init_session(self, signer: Signer, seed: str) -> HttpEngineHandle:
        data = await self._post(
            "sessions",
            {
                "chainId": self.chain_id,
                "signerAddress": signer.address,
                "mnemonic": normalize_seed(seed),
            },
        )
        session_id = data.get("sessionId")
        if not session_id:
            raise EngineUnavailableError(
                "Privacy engine did not return a session.",
                hint="Check the engine bridge logs.",
            )
        handle = HttpEngineHandle(session_id=str(session_id), capabilities=_parse_capabilities(data))
        logger.debug("Engine session %s ready: %s", handle.session_id, handle.capabilities)
        return handle

    async def get_spendable_balance(
        self, handle: HttpEngineHandle, token: str, owner: str, force_refresh: bool
    ) -> int:
        data = await self._post(
            "balance",
            {
                "sessionId": handle.session_ref,
                "token": token,
                "owner": owner,
                "forceRefresh": force_refresh,
            },
        )
        return _parse_amount(data.get("balance", 0), "balance")

    async def submit_operations(
        self,
        handle: HttpEngineHandle,
        operations: Sequence[Operation],
        fee_token: str,
        token_changes: dict[str, int] | None = None,
    ) -> str:
        payload: dict[str, Any] = {
            "sessionId": handle.session_ref,
            "ops": _ops_payload(operations),
            "feeToken": fee_token,
        }
        if token_changes:
            payload["tokenChanges"] = [
                {"token": token, "amount": str(amount)} for token, amount in token_changes.items()
            ]
        data = await self._post("actions", payload)
        return extract_tx_hash(data)

    async def get_fee_quote(
        self,
        operations: Sequence[Operation],
        fee_token: str,
        token_addresses: Sequence[str],
    ) -> FeeQuote:
        data = await self._post(
            "fee-quote",
            {
                "chainId": self.chain_id,
                "ops": _ops_payload(operations),
                "feeToken": fee_token,
                "tokenAddresses": list(token_addresses),
            },
        )
        raw_fees = data.get("flatFees") or []
        if not isinstance(raw_fees, list):
            raise EngineUnavailableError(f"Privacy engine returned a malformed flatFees: {raw_fees!r}.")
        flat_fees = tuple(_parse_amount(v, "flatFees") for v in raw_fees)
        alternate = data.get("priceOfTransactionInToken")
        return FeeQuote(
            flat_fees=flat_fees,
            alternate_fee_estimate=(
                _parse_amount(alternate, "priceOfTransactionInToken") if alternate is not None else None
            ),
        )

    async def get_shield_contract_address(self, handle: HttpEngineHandle) -> str:
        data = await self._post("shield-contract", {"sessionId": handle.session_ref})
        return str(data.get("address", ""))

    async def shield(self, handle: HttpEngineHandle, token: str, amount: int) -> str:
        data = await self._post(
            "shield",
            {"sessionId": handle.session_ref, "token": token, "amount": str(amount)},
        )
        return extract_tx_hash(data)

    async def unshield(
        self, handle: HttpEngineHandle, token: str, amount: int, recipient: str
    ) -> str:
        data = await self._post(
            "unshield",
            {
                "sessionId": handle.session_ref,
                "token": token,
                "amount": str(amount),
                "recipient": recipient,
            },
        )
        return extract_tx_hash(data)
