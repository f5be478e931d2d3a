# services/reservation-service/src/apps/core/services/pricing_service.py
"""
Pricing Service

Prices (resource, date) pairs through the payment collaborator.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import List, Iterable

from shared.common.clients import PaymentServiceClient

from . import PaymentProcessingFailed

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')


@dataclass(frozen=True)
class PricedItem:
    """One night of one resource at its base price."""
    resource_id: str
    date: date
    original_price: Decimal


class PricingService:
    """
    Pricing orchestrator.

    The collaborator computes the full price (markups, taxes, promotions)
    of every item; the reservation total is their sum. Collaborator
    outages propagate as ExternalServiceError, malformed answers as
    PaymentProcessingFailed. Either way nothing is persisted.
    """

    def __init__(self, payment_client: PaymentServiceClient = None):
        self.payment_client = payment_client or PaymentServiceClient()

    @staticmethod
    def expand(resources: Iterable, start_date: date, end_date: date) -> List[PricedItem]:
        """
        Turn resource entries into priced items.

        An entry with a ``date`` is priced once for that date; an entry
        without one is priced for every night in ``[start_date, end_date)``.
        """
        items = []
        nights = [start_date + timedelta(days=n) for n in range((end_date - start_date).days)]
        for entry in resources:
            dates = [entry.date] if entry.date else nights
            for night in dates:
                items.append(PricedItem(
                    resource_id=str(entry.resource_id),
                    date=night,
                    original_price=entry.price,
                ))
        return items

    def quote(self, items: List[PricedItem]) -> Decimal:
        """Return the total full price of ``items``."""
        if not items:
            return Decimal('0.00')

        prices = self.payment_client.get_full_prices([
            {
                'resource_id': item.resource_id,
                'date': item.date.isoformat(),
                'original_price': str(item.original_price),
            }
            for item in items
        ])

        if len(prices) != len(items):
            raise PaymentProcessingFailed(
                f"Pricing returned {len(prices)} prices for {len(items)} items"
            )

        total = Decimal('0')
        for price in prices:
            try:
                full_price = Decimal(str(price['full_price']))
            except (KeyError, TypeError, InvalidOperation):
                raise PaymentProcessingFailed(f"Malformed price entry: {price}")
            if full_price < 0:
                raise PaymentProcessingFailed(f"Negative full price: {full_price}")
            total += full_price

        total = total.quantize(CENT)
        logger.debug(f"Quoted {len(items)} items: {total}")
        return total
