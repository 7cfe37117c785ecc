"""Unit tests for adapter calldata encoding and operation builders."""
from __future__ import annotations

import pytest
from eth_abi import encode
from eth_utils import encode_hex, keccak

from hush.protocols.lending import calls

ADAPTER = "0x" + "aa" * 20
EXECUTOR = "0x" + "bb" * 20
USDC = "0x" + "cc" * 20
WETH = "0x" + "dd" * 20
SECRET = "0x" + "01" * 32
NEXT_HASH = "0x" + "02" * 32
COMMITMENT = "0x" + "03" * 32


class TestSelectors:
    def test_transfer_selector(self) -> None:
        assert encode_hex(calls.selector("transfer")) == "0xa9059cbb"

    def test_signature_format(self) -> None:
        assert calls.signature("withdrawToRecipient") == (
            "withdrawToRecipient(uint256,uint256,bytes32,bytes32,address)"
        )

    def test_unknown_selector_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown selector"):
            calls.decode_call("0xdeadbeef")


class TestEncodeCall:
    def test_wrong_arity_rejected(self) -> None:
        with pytest.raises(ValueError, match="expects 2 arguments"):
            calls.encode_call("transfer", ADAPTER)

    def test_bytes32_accepts_hex(self) -> None:
        data = calls.encode_call("getOwnerPositionIds", COMMITMENT, 0, 500)
        name, args = calls.decode_call(data)
        assert name == "getOwnerPositionIds"
        assert args == (COMMITMENT, 0, 500)

    def test_decode_result_positions(self) -> None:
        raw = encode(
            ["bytes32", "address", "address", "uint256", "bytes32"],
            [bytes.fromhex("03" * 32), WETH, USDC, 1_000_000, bytes.fromhex("02" * 32)],
        )
        owner, vault, token, amount, auth_hash = calls.decode_result("positions", encode_hex(raw))
        assert owner == COMMITMENT
        assert vault.lower() == WETH
        assert amount == 1_000_000
        assert auth_hash == NEXT_HASH


class TestDepositRequest:
    def test_deposit_request_layout(self) -> None:
        request = calls.encode_deposit_request(COMMITMENT, NEXT_HASH)
        assert len(request) == 64
        assert calls.decode_deposit_request(request) == (COMMITMENT, NEXT_HASH)


class TestBuilders:
    def test_supply_ops(self) -> None:
        ops = calls.build_supply_ops(ADAPTER, USDC, 1_000_000, COMMITMENT, NEXT_HASH)
        assert [op.contract for op in ops] == [USDC, ADAPTER]
        assert all(op.invoke_wallet is False for op in ops)

        name, args = calls.decode_call(ops[0].calldata)
        assert name == "transfer"
        assert args[0].lower() == ADAPTER and args[1] == 1_000_000

        name, args = calls.decode_call(ops[1].calldata)
        assert name == "onPrivateDeposit"
        assert args[1] == 1_000_000

    def test_withdraw_ops_pay_executor(self) -> None:
        (op,) = calls.build_withdraw_ops(ADAPTER, EXECUTOR, 7, 500, SECRET, NEXT_HASH)
        name, args = calls.decode_call(op.calldata)
        assert name == "withdrawToRecipient"
        assert args[:4] == (7, 500, SECRET, NEXT_HASH)
        assert args[4].lower() == EXECUTOR
        assert op.invoke_wallet is True

    def test_borrow_ops(self) -> None:
        (op,) = calls.build_borrow_ops(ADAPTER, EXECUTOR, WETH, 7, 10**15, SECRET, NEXT_HASH)
        name, args = calls.decode_call(op.calldata)
        assert name == "borrowToRecipient"
        assert args[1].lower() == WETH
        assert args[2] == 10**15

    def test_repay_ops_transfer_debt_first(self) -> None:
        transfer, repay = calls.build_repay_ops(ADAPTER, WETH, 7, 10**15, SECRET, NEXT_HASH)
        assert transfer.contract == WETH
        name, args = calls.decode_call(repay.calldata)
        assert name == "repayFromPrivate"
        assert args[0] == 7
        assert args[1].lower() == WETH
        assert args[2:] == (10**15, SECRET, NEXT_HASH)

    def test_revealed_secret_hashes_to_commitment(self) -> None:
        (op,) = calls.build_withdraw_ops(ADAPTER, EXECUTOR, 7, 500, SECRET, NEXT_HASH)
        _, args = calls.decode_call(op.calldata)
        assert encode_hex(keccak(hexstr=args[2])) == encode_hex(keccak(b"\x01" * 32))

    def test_describe_operation(self) -> None:
        (op,) = calls.build_withdraw_ops(ADAPTER, EXECUTOR, 7, 500, SECRET, NEXT_HASH)
        assert calls.describe_operation(op) == f"{ADAPTER}.withdrawToRecipient"
