# backend/portfolio_tracker/services/valuation/index.py
"""
Valuation index: "latest known value of asset X as of date D".

Valuations are sparse (a manual entry every few months is normal), so a
lookup returns the most recent record on or before the requested date
instead of requiring an exact match. An asset with no valuation at all
yields None, which callers treat as price 0.

Usage:
    index = ValuationIndex(valuations)

    record = index.as_of(asset_id=1, on=date(2024, 3, 31))
    price = index.price_as_of(1, date(2024, 3, 31))  # Decimal("0") if none
    latest = index.latest(1)
"""

from __future__ import annotations

import logging
from bisect import bisect_right
from datetime import date
from decimal import Decimal
from typing import Iterable

from portfolio_tracker.services.valuation.types import ValuationRecord

logger = logging.getLogger(__name__)


class ValuationIndex:
    """
    Read-only index of valuation records per asset.

    Built once per snapshot. Records are deduplicated per (asset, date),
    with the record that comes later in the input winning, then kept in
    date order so "as of" lookups are a binary search and "latest" is the
    last element.
    """

    def __init__(self, valuations: Iterable[ValuationRecord] = ()) -> None:
        by_asset: dict[int, dict[date, ValuationRecord]] = {}
        duplicates = 0

        for record in valuations:
            per_date = by_asset.setdefault(record.asset_id, {})
            if record.date in per_date:
                duplicates += 1
            per_date[record.date] = record

        self._records: dict[int, list[ValuationRecord]] = {}
        self._dates: dict[int, list[date]] = {}

        for asset_id, per_date in by_asset.items():
            ordered = [per_date[d] for d in sorted(per_date)]
            self._records[asset_id] = ordered
            self._dates[asset_id] = [r.date for r in ordered]

        if duplicates:
            logger.debug(f"Valuation index dropped {duplicates} superseded same-date record(s)")

    def __len__(self) -> int:
        return sum(len(records) for records in self._records.values())

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._records

    @property
    def asset_ids(self) -> list[int]:
        return sorted(self._records)

    def has_valuations(self, asset_id: int) -> bool:
        return asset_id in self._records

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def as_of(self, asset_id: int, on: date) -> ValuationRecord | None:
        """
        Most recent valuation of asset_id dated on or before `on`.

        Returns None if the asset has no valuation yet at that date.
        """
        dates = self._dates.get(asset_id)
        if not dates:
            return None

        position = bisect_right(dates, on)
        if position == 0:
            return None
        return self._records[asset_id][position - 1]

    def latest(self, asset_id: int) -> ValuationRecord | None:
        """Most recent valuation of asset_id regardless of date."""
        records = self._records.get(asset_id)
        return records[-1] if records else None

    def price_as_of(self, asset_id: int, on: date) -> Decimal:
        """Value as of `on`, or Decimal("0") when no valuation exists."""
        record = self.as_of(asset_id, on)
        return record.value if record is not None else Decimal("0")

    def latest_price(self, asset_id: int) -> Decimal:
        """Latest value, or Decimal("0") when no valuation exists."""
        record = self.latest(asset_id)
        return record.value if record is not None else Decimal("0")

    def history(self, asset_id: int) -> list[ValuationRecord]:
        """All (deduplicated) valuations of asset_id, newest first."""
        return list(reversed(self._records.get(asset_id, [])))

    def dates(self, asset_ids: Iterable[int] | None = None) -> list[date]:
        """Sorted distinct valuation dates, optionally limited to some assets."""
        wanted = self._dates.keys() if asset_ids is None else asset_ids
        distinct: set[date] = set()
        for asset_id in wanted:
            distinct.update(self._dates.get(asset_id, ()))
        return sorted(distinct)
