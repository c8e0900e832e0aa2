# backend/portfolio_tracker/services/valuation/aggregation.py
"""
Breakdowns of portfolio value by a categorical key.

A breakdown buckets values by a label extracted from asset metadata (asset
class, sector, geography, platform, or the asset itself), sums each bucket
and drops buckets whose total is at or below a small epsilon so charts do
not render zero-value slices.

Usage:
    reporter = AggregationReporter()

    # Current state
    pairs = reporter.group_states(summary.states, GroupingKey.SECTOR)

    # One row of the allocation history
    pairs = reporter.group_row(history.allocation_rows[-1])
"""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterable
from decimal import Decimal
from typing import TypeVar

from portfolio_tracker.services.constants import AGGREGATION_EPSILON, UNCATEGORIZED_LABEL
from portfolio_tracker.services.exceptions import InvalidGroupingKeyError
from portfolio_tracker.services.valuation.types import (
    AggregationPair,
    AllocationRow,
    AssetRecord,
    PortfolioState,
)

T = TypeVar("T")

KeyExtractor = Callable[[AssetRecord], str | None]


# =============================================================================
# KEY EXTRACTORS
# =============================================================================

def category_label(raw: str | None) -> str:
    """Normalize an extracted key; missing or blank values become "Uncategorized"."""
    if raw is None or not str(raw).strip():
        return UNCATEGORIZED_LABEL
    return str(raw).strip()


def asset_class_key(asset: AssetRecord) -> str | None:
    return asset.asset_class


def sector_key(asset: AssetRecord) -> str | None:
    return asset.sector


def geography_key(asset: AssetRecord) -> str | None:
    return asset.geography


def platform_key(asset: AssetRecord) -> str | None:
    return asset.platform


def asset_name_key(asset: AssetRecord) -> str | None:
    return asset.name


class GroupingKey(str, enum.Enum):
    """Named key extractors offered to the dashboard."""

    ASSET_CLASS = "asset_class"
    SECTOR = "sector"
    GEOGRAPHY = "geography"
    PLATFORM = "platform"
    ASSET = "asset"

    @classmethod
    def parse(cls, value: str | GroupingKey) -> GroupingKey:
        """
        Resolve a grouping key from its name.

        Raises:
            InvalidGroupingKeyError: If value is not a known key
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidGroupingKeyError(str(value), [key.value for key in cls]) from None

    @property
    def extractor(self) -> KeyExtractor:
        return _EXTRACTORS[self]


_EXTRACTORS: dict[GroupingKey, KeyExtractor] = {
    GroupingKey.ASSET_CLASS: asset_class_key,
    GroupingKey.SECTOR: sector_key,
    GroupingKey.GEOGRAPHY: geography_key,
    GroupingKey.PLATFORM: platform_key,
    GroupingKey.ASSET: asset_name_key,
}


def resolve_key(group_by: GroupingKey | str | KeyExtractor) -> KeyExtractor:
    """Accept a GroupingKey, its name, or any callable taking an AssetRecord."""
    if callable(group_by) and not isinstance(group_by, str):
        return group_by
    return GroupingKey.parse(group_by).extractor


# =============================================================================
# REPORTER
# =============================================================================

class AggregationReporter:
    """
    Groups values by an extracted key.

    Output pairs are ordered by value (largest first), then name, so
    identical inputs always give identical output; the presentation layer
    is free to re-sort.
    """

    def __init__(self, epsilon: Decimal = AGGREGATION_EPSILON) -> None:
        """
        Args:
            epsilon: Buckets whose total is <= epsilon are dropped
        """
        self._epsilon = epsilon

    def aggregate(
            self,
            items: Iterable[T],
            key: Callable[[T], str | None],
            value: Callable[[T], Decimal],
    ) -> list[AggregationPair]:
        """
        Bucket items by key(item), summing value(item).

        Args:
            items: Anything to group
            key: Label extractor; None or blank maps to "Uncategorized"
            value: Value extractor

        Returns:
            (name, value) pairs above epsilon
        """
        buckets: dict[str, Decimal] = {}
        for item in items:
            label = category_label(key(item))
            buckets[label] = buckets.get(label, Decimal("0")) + value(item)

        pairs = [
            AggregationPair(name=label, value=total)
            for label, total in buckets.items()
            if total > self._epsilon
        ]
        pairs.sort(key=lambda pair: (-pair.value, pair.name))
        return pairs

    def group_states(
            self,
            states: Iterable[PortfolioState],
            group_by: GroupingKey | str | KeyExtractor = GroupingKey.ASSET_CLASS,
    ) -> list[AggregationPair]:
        """Breakdown of current values."""
        extractor = resolve_key(group_by)
        return self.aggregate(
            states,
            key=lambda state: extractor(state.asset),
            value=lambda state: state.current_value,
        )

    def group_row(self, row: AllocationRow) -> list[AggregationPair]:
        """Breakdown of one historical allocation row (already bucketed)."""
        return self.aggregate(
            row.values.items(),
            key=lambda item: item[0],
            value=lambda item: item[1],
        )
