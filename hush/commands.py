"""Interactive command dispatch."""
from __future__ import annotations

import asyncio
import logging
import shlex
from typing import Awaitable, Callable

from .amounts import format_token_amount, parse_token_amount
from .config import AppConfig
from .errors import HushError, UsageError
from .models import ActionResult
from .services.orchestrator import ActionOrchestrator

logger = logging.getLogger(__name__)

PROMPT = "hush> "
MAX_SENTINEL = "max"

Output = Callable[[str], None]


def parse_position_id(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise UsageError(f"Invalid position id: {text!r}") from None
    if value < 0:
        raise UsageError(f"Invalid position id: {text!r}")
    return value


class CommandShell:
    """Dispatch CLI commands to the orchestrator.

    A failing command prints ``Error: <message>`` and leaves the shell and the
    session intact.
    """

    def __init__(
        self,
        orchestrator: ActionOrchestrator,
        config: AppConfig,
        output: Output = print,
    ) -> None:
        self._orchestrator = orchestrator
        self._config = config
        self._out = output
        self._commands: dict[str, tuple[Callable[[list[str]], Awaitable[None]], str, str]] = {
            "login": (self._login, "login", "Derive the session key and load or create a private identity"),
            "import": (self._import, "import <seed words...>", "Replace the private identity with a backed-up seed"),
            "supply": (self._supply, "supply <amount>", "Open a position from the private balance"),
            "withdraw": (
                self._withdraw,
                "withdraw <positionId> <amount|max> [authSecret]",
                "Withdraw from a position",
            ),
            "borrow": (self._borrow, "borrow <positionId> <amount> [authSecret]", "Borrow against a position"),
            "repay": (self._repay, "repay <positionId> <amount> [authSecret]", "Repay position debt"),
            "show-positions": (self._show_positions, "show-positions", "List positions of this private identity"),
            "position-auth": (
                self._position_auth,
                "position-auth <positionId> [authSecret]",
                "Show or import a position authorization secret",
            ),
            "shield": (self._shield, "shield <amount>", "Move public funds into the private balance"),
            "unshield": (self._unshield, "unshield <amount> [recipient]", "Move private funds to a public address"),
            "balance": (self._balance, "balance", "Show the spendable private balance"),
            "logout": (self._logout, "logout", "Drop the in-memory session"),
            "forget": (self._forget, "forget", "Delete the stored session for this wallet"),
            "help": (self._help, "help", "Show this help"),
        }

    # ------------------------------------------------------------------
    # Formatting helpers
    # ------------------------------------------------------------------

    def _supply_amount(self, text: str) -> int:
        return parse_token_amount(text, self._config.tokens.supply.decimals)

    def _borrow_amount(self, text: str) -> int:
        return parse_token_amount(text, self._config.tokens.borrow.decimals)

    def _fmt_supply(self, amount: int) -> str:
        token = self._config.tokens.supply
        return f"{format_token_amount(amount, token.decimals)} {token.symbol}"

    @staticmethod
    def _require_args(args: list[str], minimum: int, maximum: int, usage: str) -> None:
        if not minimum <= len(args) <= maximum:
            raise UsageError(f"Usage: {usage}")

    def _print_result(self, result: ActionResult) -> None:
        self._out(f"{result.action} submitted: {result.tx_hash or '(no tx hash returned)'}")
        if result.fee_reserve is not None:
            self._out(f"Fee reserve: {self._fmt_supply(result.fee_reserve.reserve)}")
        if result.position_id is not None:
            self._out(f"Position: {result.position_id}")
        if result.closed:
            self._out("Position closed; local secret removed.")
        if result.revealed_secret:
            self._out(f"Authorization secret (back this up): {result.revealed_secret}")

    # ------------------------------------------------------------------
    # Command handlers
    # ------------------------------------------------------------------

    async def _login(self, args: list[str]) -> None:
        self._require_args(args, 0, 0, "login")
        result = await self._orchestrator.login()
        self._out(f"Wallet: {self._orchestrator.signer_address}")
        self._out(f"Private address: {result.private_address}")
        if result.seed_backup:
            self._out("New private identity created. Back up this seed phrase:")
            self._out(f"  {result.seed_backup}")

    async def _import(self, args: list[str]) -> None:
        if not args:
            raise UsageError("Usage: import <seed words...>")
        result = await self._orchestrator.import_seed(" ".join(args))
        self._out(f"Imported private identity: {result.private_address}")

    async def _supply(self, args: list[str]) -> None:
        self._require_args(args, 1, 1, "supply <amount>")
        self._print_result(await self._orchestrator.supply(self._supply_amount(args[0])))

    async def _withdraw(self, args: list[str]) -> None:
        self._require_args(args, 2, 3, "withdraw <positionId> <amount|max> [authSecret]")
        position_id = parse_position_id(args[0])
        amount = None if args[1].lower() == MAX_SENTINEL else self._supply_amount(args[1])
        result = await self._orchestrator.withdraw(
            position_id, amount, args[2] if len(args) > 2 else None
        )
        self._print_result(result)
        if result.remaining_amount is not None and not result.closed:
            self._out(f"Remaining: {self._fmt_supply(result.remaining_amount)}")

    async def _borrow(self, args: list[str]) -> None:
        self._require_args(args, 2, 3, "borrow <positionId> <amount> [authSecret]")
        result = await self._orchestrator.borrow(
            parse_position_id(args[0]),
            self._borrow_amount(args[1]),
            args[2] if len(args) > 2 else None,
        )
        self._print_result(result)

    async def _repay(self, args: list[str]) -> None:
        self._require_args(args, 2, 3, "repay <positionId> <amount> [authSecret]")
        result = await self._orchestrator.repay(
            parse_position_id(args[0]),
            self._borrow_amount(args[1]),
            args[2] if len(args) > 2 else None,
        )
        self._print_result(result)

    async def _show_positions(self, args: list[str]) -> None:
        self._require_args(args, 0, 0, "show-positions")
        summaries = await self._orchestrator.show_positions()
        if not summaries:
            self._out("No positions found.")
            return
        for summary in summaries:
            position = summary.position
            marker = "secret held" if summary.has_local_secret else "no local secret"
            self._out(
                f"#{position.position_id}  {self._fmt_supply(position.amount)}  "
                f"vault {position.vault}  ({marker})"
            )

    async def _position_auth(self, args: list[str]) -> None:
        self._require_args(args, 1, 2, "position-auth <positionId> [authSecret]")
        position_id = parse_position_id(args[0])
        if len(args) == 1:
            secret = await self._orchestrator.position_auth(position_id)
            self._out(f"Position {position_id} authorization secret: {secret}")
        else:
            await self._orchestrator.position_auth(position_id, args[1])
            self._out(f"Authorization secret imported for position {position_id}.")

    async def _shield(self, args: list[str]) -> None:
        self._require_args(args, 1, 1, "shield <amount>")
        self._print_result(await self._orchestrator.shield(self._supply_amount(args[0])))

    async def _unshield(self, args: list[str]) -> None:
        self._require_args(args, 1, 2, "unshield <amount> [recipient]")
        result = await self._orchestrator.unshield(
            self._supply_amount(args[0]), args[1] if len(args) > 1 else None
        )
        self._print_result(result)

    async def _balance(self, args: list[str]) -> None:
        self._require_args(args, 0, 0, "balance")
        balance = await self._orchestrator.private_balance()
        self._out(f"Private balance: {self._fmt_supply(balance)}")

    async def _logout(self, args: list[str]) -> None:
        self._orchestrator.logout()
        self._out("Logged out.")

    async def _forget(self, args: list[str]) -> None:
        await self._orchestrator.forget()
        self._out("Stored privacy session deleted.")

    async def _help(self, args: list[str]) -> None:
        width = max(len(usage) for _, usage, _ in self._commands.values())
        for _, usage, description in self._commands.values():
            self._out(f"  {usage.ljust(width)}  {description}")
        self._out(f"  {'exit'.ljust(width)}  Leave the shell")

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def execute(self, line: str) -> bool:
        """Run one command line. Returns False when the shell should exit."""
        try:
            parts = shlex.split(line)
        except ValueError as e:
            self._out(f"Error: {e}")
            return True
        if not parts:
            return True

        name, args = parts[0].lower(), parts[1:]
        if name in ("exit", "quit"):
            return False

        entry = self._commands.get(name)
        if entry is None:
            self._out(f"Error: Unknown command '{name}'. Type help for a list of commands.")
            return True

        handler = entry[0]
        try:
            await handler(args)
        except HushError as e:
            logger.debug("Command %s failed (%s)", name, e.kind.value)
            self._out(f"Error: {e}")
        except Exception as e:
            logger.exception("Unexpected failure in %s", name)
            self._out(f"Error: {e}")
        return True

    async def run(self, read_line: Callable[[str], str] = input) -> None:
        """Read-eval loop until ``exit`` or end of input."""
        self._out("Type help for a list of commands.")
        while True:
            try:
                line = await asyncio.to_thread(read_line, PROMPT)
            except EOFError:
                break
            if not await self.execute(line):
                break
