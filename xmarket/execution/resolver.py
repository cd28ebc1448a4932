from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional, Tuple

from xmarket.execution.errors import MarketError, error_kind_from_code
from xmarket.execution.events import race, replay_then_subscribe, watch
from xmarket.execution.models import Order, OutcomeKind, TransactionOutcome
from xmarket.ledger.interface import EventLog, IEventStream, IMarketContract

_QTY_ARGS = {
    OutcomeKind.FILLED: "filledQty",
    OutcomeKind.CANCELLED: "cancelledQty",
}


class OrderTransactionInfo:
    """Resolves what a submitted trade or cancel transaction did to an order.

    ``filled_qty()`` and ``cancelled_qty()`` each race two branches:

    * primary: historical filled/cancelled logs for the maker over the block
      range, then a live subscription if history had nothing for this tx;
    * error: a live subscription on the contract's error logs, opened only
      after the primary replay missed.

    The first branch to match the transaction hash wins and the other is torn
    down before the accessor returns. Each accessor resolves once; later calls
    await the same result.
    """

    def __init__(
        self,
        *,
        market_contract: IMarketContract,
        order: Order,
        tx_hash: str,
        block_number: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.market_contract = market_contract
        self.order = order
        self.tx_hash = tx_hash
        self.block_number = block_number
        self.from_block = block_number or 0
        self.to_block = block_number
        self._log = logger or logging.getLogger("xmarket.execution.resolver")
        self._tasks: Dict[OutcomeKind, asyncio.Task] = {}

    def __repr__(self) -> str:
        return f"OrderTransactionInfo(tx_hash={self.tx_hash!r}, block_number={self.block_number!r})"

    async def filled_qty(self) -> int:
        return self._unwrap(await self.filled_outcome())

    async def cancelled_qty(self) -> int:
        return self._unwrap(await self.cancelled_outcome())

    async def filled_outcome(self) -> TransactionOutcome:
        return await self._outcome(OutcomeKind.FILLED)

    async def cancelled_outcome(self) -> TransactionOutcome:
        return await self._outcome(OutcomeKind.CANCELLED)

    # ------------------------------------------------------------------
    @staticmethod
    def _unwrap(outcome: TransactionOutcome) -> int:
        if outcome.error is not None:
            raise MarketError(outcome.error)
        return int(outcome.qty or 0)

    def _matches(self, entry: EventLog) -> bool:
        return entry.tx_hash.lower() == self.tx_hash.lower()

    def _outcome(self, kind: OutcomeKind) -> "asyncio.Task[TransactionOutcome]":
        task = self._tasks.get(kind)
        if task is None or task.cancelled():
            task = asyncio.ensure_future(self._resolve(kind))
            self._tasks[kind] = task
        return task

    def _stream(self, kind: OutcomeKind) -> IEventStream:
        if kind is OutcomeKind.FILLED:
            return self.market_contract.filled_events()
        return self.market_contract.cancelled_events()

    async def _primary(self, kind: OutcomeKind, replay_missed: asyncio.Event) -> Tuple[bool, EventLog]:
        entry = await replay_then_subscribe(
            self._stream(kind),
            self._matches,
            filters={"maker": self.order.maker},
            from_block=self.from_block,
            to_block=self.to_block,
            on_replay_miss=replay_missed.set,
            logger=self._log,
        )
        return False, entry

    async def _errors(self, replay_missed: asyncio.Event) -> Tuple[bool, EventLog]:
        await replay_missed.wait()
        entry = await watch(
            self.market_contract.error_events(),
            self._matches,
            from_block=self.from_block,
            logger=self._log,
        )
        return True, entry

    async def _resolve(self, kind: OutcomeKind) -> TransactionOutcome:
        replay_missed = asyncio.Event()
        is_error, entry = await race(self._primary(kind, replay_missed), self._errors(replay_missed))
        if is_error:
            error = error_kind_from_code(entry.args.get("errorCode", -1))
            outcome = TransactionOutcome.failed(self.tx_hash, error)
        else:
            qty = int(entry.args[_QTY_ARGS[kind]])
            if kind is OutcomeKind.FILLED:
                outcome = TransactionOutcome.filled(self.tx_hash, qty)
            else:
                outcome = TransactionOutcome.cancelled(self.tx_hash, qty)
        self._log.info(
            "order_resolved",
            extra={
                "kind": outcome.kind.value,
                "tx_hash": self.tx_hash,
                "qty": outcome.qty,
                "error": outcome.error.value if outcome.error else None,
                "block_number": entry.block_number,
            },
        )
        return outcome


__all__ = ["OrderTransactionInfo"]
