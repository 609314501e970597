"""Lookup table from connector (transaction type, outcome) to a canonical state."""

import enum
import logging
from typing import Dict, Generic, Iterable, Tuple, TypeVar

logger = logging.getLogger(__name__)

TxnType = TypeVar("TxnType", bound=enum.Enum)
Outcome = TypeVar("Outcome", bound=enum.Enum)
State = TypeVar("State", bound=enum.Enum)


class StatusMatrix(Generic[TxnType, Outcome, State]):
    """A fixed, total mapping of connector status vocabulary onto canonical states.

    Every combination of the declared transaction types and outcomes must be
    present. There is no default state: a matrix with a gap cannot be built.

    Example:
        matrix = StatusMatrix(
            HelcimTransactionType,
            HelcimPaymentStatus,
            {(HelcimTransactionType.PRE_AUTH, HelcimPaymentStatus.APPROVED): AttemptStatus.AUTHORIZED, ...},
        )
        matrix.resolve(HelcimTransactionType.PRE_AUTH, HelcimPaymentStatus.APPROVED)
    """

    def __init__(
        self,
        transaction_types: Iterable[TxnType],
        outcomes: Iterable[Outcome],
        table: Dict[Tuple[TxnType, Outcome], State],
    ):
        self.transaction_types = tuple(transaction_types)
        self.outcomes = tuple(outcomes)

        missing = [
            (t, o)
            for t in self.transaction_types
            for o in self.outcomes
            if (t, o) not in table
        ]
        if missing:
            pairs = ", ".join(f"({t.value}, {o.value})" for t, o in missing)
            raise ValueError(f"Status matrix is not total, missing: {pairs}")

        unknown = [
            key for key in table
            if key[0] not in self.transaction_types or key[1] not in self.outcomes
        ]
        if unknown:
            raise ValueError(f"Status matrix has undeclared keys: {unknown}")

        self._table: Dict[Tuple[TxnType, Outcome], State] = dict(table)

    def resolve(self, transaction_type: TxnType, outcome: Outcome) -> State:
        state = self._table[(transaction_type, outcome)]
        logger.debug(
            f"Resolved ({transaction_type.value}, {outcome.value}) -> {state.value}"
        )
        return state

    def states(self) -> Dict[Tuple[TxnType, Outcome], State]:
        return dict(self._table)

    def row(self, transaction_type: TxnType) -> Dict[Outcome, State]:
        return {o: self._table[(transaction_type, o)] for o in self.outcomes}

    def __len__(self) -> int:
        return len(self._table)
