"""ABI encoding and decoding for the private lending adapter."""
from __future__ import annotations

from typing import Any

from eth_abi import decode, encode
from eth_utils import decode_hex, encode_hex, keccak

from ...models import Operation

# name → (argument types, return types)
FUNCTIONS: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    # ERC-20
    "transfer": (("address", "uint256"), ("bool",)),
    # adapter mutations
    "onPrivateDeposit": (("address", "uint256", "bytes"), ("uint256",)),
    "withdrawToRecipient": (
        ("uint256", "uint256", "bytes32", "bytes32", "address"),
        ("uint256",),
    ),
    "borrowToRecipient": (
        ("uint256", "address", "uint256", "bytes32", "bytes32", "address"),
        ("uint256",),
    ),
    "repayFromPrivate": (
        ("uint256", "address", "uint256", "bytes32", "bytes32"),
        ("uint256",),
    ),
    # adapter views
    "privacyExecutor": ((), ("address",)),
    "supplyToken": ((), ("address",)),
    "isBorrowTokenAllowed": (("address",), ("bool",)),
    "positions": (
        ("uint256",),
        ("bytes32", "address", "address", "uint256", "bytes32"),
    ),
    "getOwnerPositionIds": (
        ("bytes32", "uint256", "uint256"),
        ("uint256[]", "uint256"),
    ),
}

DEPOSIT_REQUEST_TYPE = "(bytes32,bytes32)"


def signature(name: str) -> str:
    """Canonical signature, e.g. ``transfer(address,uint256)``."""
    arg_types, _ = FUNCTIONS[name]
    return f"{name}({','.join(arg_types)})"


def selector(name: str) -> bytes:
    return keccak(text=signature(name))[:4]


_SELECTORS: dict[bytes, str] = {selector(name): name for name in FUNCTIONS}


def _to_abi(value: Any, abi_type: str) -> Any:
    if abi_type == "bytes32" and isinstance(value, str):
        return decode_hex(value)
    return value


def _from_abi(value: Any, abi_type: str) -> Any:
    if abi_type in ("bytes32", "bytes") and isinstance(value, bytes):
        return encode_hex(value)
    if abi_type == "uint256[]":
        return [int(v) for v in value]
    return value


def encode_call(name: str, *args: Any) -> str:
    """ABI-encode a call to ``name`` as 0x-prefixed calldata."""
    arg_types, _ = FUNCTIONS[name]
    if len(args) != len(arg_types):
        raise ValueError(f"{name} expects {len(arg_types)} arguments, got {len(args)}")
    converted = [_to_abi(v, t) for v, t in zip(args, arg_types)]
    return encode_hex(selector(name) + encode(list(arg_types), converted))


def decode_call(calldata: str) -> tuple[str, tuple[Any, ...]]:
    """Inverse of ``encode_call`` for the functions in ``FUNCTIONS``."""
    raw = decode_hex(calldata)
    name = _SELECTORS.get(raw[:4])
    if name is None:
        raise ValueError(f"Unknown selector {encode_hex(raw[:4])}")
    arg_types, _ = FUNCTIONS[name]
    values = decode(list(arg_types), raw[4:])
    return name, tuple(_from_abi(v, t) for v, t in zip(values, arg_types))


def decode_result(name: str, data: str) -> tuple[Any, ...]:
    """Decode the return data of an ``eth_call`` to ``name``."""
    _, return_types = FUNCTIONS[name]
    values = decode(list(return_types), decode_hex(data))
    return tuple(_from_abi(v, t) for v, t in zip(values, return_types))


def encode_deposit_request(owner_commitment: str, auth_hash: str) -> bytes:
    return encode(
        [DEPOSIT_REQUEST_TYPE], [(decode_hex(owner_commitment), decode_hex(auth_hash))]
    )


def decode_deposit_request(data: bytes) -> tuple[str, str]:
    ((owner, auth_hash),) = decode([DEPOSIT_REQUEST_TYPE], data)
    return encode_hex(owner), encode_hex(auth_hash)


def describe_operation(op: Operation) -> str:
    """Short human-readable form of an operation for debug logs."""
    try:
        name, _ = decode_call(op.calldata)
    except ValueError:
        name = op.calldata[:10]
    return f"{op.contract}.{name}"


# ---------------------------------------------------------------------------
# Operation sequences per action
# ---------------------------------------------------------------------------


def build_supply_ops(
    adapter: str,
    token: str,
    amount: int,
    owner_commitment: str,
    auth_hash: str,
) -> list[Operation]:
    """Move ``amount`` to the adapter and open a position committed to ``auth_hash``.

    Funds are unshielded into the executor for this action, so both calls
    run from the executor rather than the stateful wallet.
    """
    request = encode_deposit_request(owner_commitment, auth_hash)
    return [
        Operation(
            contract=token,
            calldata=encode_call("transfer", adapter, amount),
            invoke_wallet=False,
        ),
        Operation(
            contract=adapter,
            calldata=encode_call("onPrivateDeposit", token, amount, request),
            invoke_wallet=False,
        ),
    ]


def build_withdraw_ops(
    adapter: str,
    recipient: str,
    position_id: int,
    amount: int,
    auth_secret: str,
    next_auth_hash: str,
) -> list[Operation]:
    return [
        Operation(
            contract=adapter,
            calldata=encode_call(
                "withdrawToRecipient",
                position_id, amount, auth_secret, next_auth_hash, recipient,
            ),
        )
    ]


def build_borrow_ops(
    adapter: str,
    recipient: str,
    debt_token: str,
    position_id: int,
    amount: int,
    auth_secret: str,
    next_auth_hash: str,
) -> list[Operation]:
    return [
        Operation(
            contract=adapter,
            calldata=encode_call(
                "borrowToRecipient",
                position_id, debt_token, amount, auth_secret, next_auth_hash, recipient,
            ),
        )
    ]


def build_repay_ops(
    adapter: str,
    debt_token: str,
    position_id: int,
    amount: int,
    auth_secret: str,
    next_auth_hash: str,
) -> list[Operation]:
    return [
        Operation(
            contract=debt_token,
            calldata=encode_call("transfer", adapter, amount),
            invoke_wallet=False,
        ),
        Operation(
            contract=adapter,
            calldata=encode_call(
                "repayFromPrivate",
                position_id, debt_token, amount, auth_secret, next_auth_hash,
            ),
            invoke_wallet=False,
        ),
    ]
