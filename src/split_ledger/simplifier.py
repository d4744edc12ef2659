"""Reduce net balances to a short list of settling transfers."""

import logging
from collections.abc import Mapping

from .exceptions import DataIntegrityError
from .models import Transfer
from .money import SETTLEMENT_EPSILON, Money

logger = logging.getLogger(__name__)


def simplify_debts(balances: Mapping[str, Money]) -> list[Transfer]:
    """
    Compute transfers that settle the given balances.

    Greedy largest-first matching:
    1. Split members into debtors (balance < -epsilon) and creditors
       (balance > +epsilon); anything within epsilon is already settled
    2. Sort debtors most negative first and creditors most positive first,
       breaking ties by member ID
    3. Repeatedly pay min(debt, credit) from the current debtor to the
       current creditor, moving on from whichever side reaches zero

    This produces at most (non-zero balances - 1) transfers. It is the usual
    minimal-cash-flow heuristic, not a guaranteed global minimum.

    Args:
        balances: Mapping of member ID to net balance

    Returns:
        Transfers in settlement order (deterministic for the same input)

    Raises:
        DataIntegrityError: If a non-positive transfer amount comes up, which
                            means the balances were inconsistent
    """
    debtors = sorted(
        ((member_id, Money.of(b)) for member_id, b in balances.items()
         if Money.of(b) < -SETTLEMENT_EPSILON),
        key=lambda item: (item[1], item[0]),
    )
    creditors = sorted(
        ((member_id, Money.of(b)) for member_id, b in balances.items()
         if Money.of(b) > SETTLEMENT_EPSILON),
        key=lambda item: (-item[1], item[0]),
    )

    # Remaining balances, mutated as transfers are emitted
    debts = [balance for _, balance in debtors]
    credits = [balance for _, balance in creditors]

    transfers: list[Transfer] = []
    i = 0
    j = 0
    while i < len(debtors) and j < len(creditors):
        amount = min(-debts[i], credits[j])

        if amount <= 0:
            logger.error(
                f"Non-positive transfer {amount} between {debtors[i][0]} and "
                f"{creditors[j][0]}; balances are inconsistent"
            )
            raise DataIntegrityError(
                f"Debt simplification produced a non-positive transfer ({amount}); "
                f"balances do not sum to zero"
            )

        transfers.append(
            Transfer(
                from_member_id=debtors[i][0],
                to_member_id=creditors[j][0],
                amount=amount,
            )
        )
        debts[i] = debts[i] + amount
        credits[j] = credits[j] - amount

        if debts[i] >= -SETTLEMENT_EPSILON:
            i += 1
        if credits[j] <= SETTLEMENT_EPSILON:
            j += 1

    if i < len(debtors) or j < len(creditors):
        # One-sided leftovers, e.g. the payer of an expense with no splits
        logger.debug(
            f"Unmatched balances after settlement: "
            f"{len(debtors) - i} debtors, {len(creditors) - j} creditors"
        )

    logger.debug(
        f"Simplified {len(debtors) + len(creditors)} non-zero balances "
        f"into {len(transfers)} transfers"
    )
    return transfers
