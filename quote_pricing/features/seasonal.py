"""Seasonal / holiday adjustments: month, then season, then holiday window."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

from quote_pricing.features.base_feature import BaseFeature
from quote_pricing.models.enums import FeatureType, Season
from quote_pricing.models.schemas import HolidayWindow, SeasonalConfig
from quote_pricing.models.state import FeatureOutcome, PricingContext, PricingResult


def season_for_month(month: int) -> Season:
    if 3 <= month <= 5:
        return Season.SPRING
    if 6 <= month <= 8:
        return Season.SUMMER
    if 9 <= month <= 11:
        return Season.AUTUMN
    return Season.WINTER


def matching_holiday(holidays: list[HolidayWindow], day: date) -> Optional[HolidayWindow]:
    for holiday in holidays:
        if holiday.contains(day):
            return holiday
    return None


class SeasonalAdjustmentFeature(BaseFeature):
    feature_type = FeatureType.SEASONAL_ADJUSTMENTS
    name = "Seasonal Adjustments"

    def __init__(self, config: SeasonalConfig):
        self.config = config

    async def _real_apply(
        self, context: PricingContext, result: PricingResult
    ) -> Optional[FeatureOutcome]:
        when = context.booking_date
        month = when.month
        season = season_for_month(month)

        multiplier = 1.0
        metadata: dict[str, Any] = {"season": season.value, "month": month}

        monthly = self.config.monthly_multipliers.get(month)
        if monthly is not None:
            multiplier *= monthly
            metadata["monthly_multiplier"] = monthly

        seasonal = self.config.seasonal_multipliers.get(season)
        if seasonal is not None:
            multiplier *= seasonal
            metadata["seasonal_multiplier"] = seasonal

        holiday = matching_holiday(self.config.holidays, when.date())
        if holiday is not None and holiday.multiplier != 1:
            multiplier *= holiday.multiplier
            metadata["holiday"] = holiday.name
            metadata["holiday_multiplier"] = holiday.multiplier

        return self.scaled(result, multiplier, metadata)
