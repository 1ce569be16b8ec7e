"""
Consistency strategies for paired room/booking writes.

Every mutation the coordinator performs touches two records: a booking row
and the room's ``booked_dates`` list. The strategy decides where the
transaction boundaries fall between those two writes.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from config import STRATEGY_BEST_EFFORT, STRATEGY_TRANSACTIONAL


class ConsistencyStrategy:
    name = ""
    # True when the first write is durable before the second one starts
    commits_each_write = False

    async def checkpoint(self, session: AsyncSession) -> None:
        """Called between the first and the second write."""
        raise NotImplementedError

    async def complete(self, session: AsyncSession) -> None:
        await session.commit()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class TransactionalStrategy(ConsistencyStrategy):
    """
    Both writes run inside one transaction.

    The room row is read with SELECT ... FOR UPDATE before the first write,
    so concurrent writers on the same room are serialized until commit. Any
    failure rolls the whole pair back.
    """

    name = STRATEGY_TRANSACTIONAL

    async def checkpoint(self, session: AsyncSession) -> None:
        await session.flush()


class BestEffortStrategy(ConsistencyStrategy):
    """
    Each write is committed on its own.

    A failure of the second write leaves the first one in place. The
    coordinator reports it as BookingFailed and logs the dangling record for
    out-of-band reconciliation; nothing is repaired automatically.
    """

    name = STRATEGY_BEST_EFFORT
    commits_each_write = True

    async def checkpoint(self, session: AsyncSession) -> None:
        await session.commit()


STRATEGIES = {
    STRATEGY_TRANSACTIONAL: TransactionalStrategy,
    STRATEGY_BEST_EFFORT: BestEffortStrategy,
}


def get_strategy(name: str) -> ConsistencyStrategy:
    try:
        return STRATEGIES[name]()
    except KeyError:
        raise ValueError(f"Unknown consistency strategy: {name!r}") from None
