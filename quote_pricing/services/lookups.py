"""
External lookups — the async collaborators some features consult.

The engine assumes no transport: each lookup is an async callable returning
plain data.  The defaults return neutral values so a bare engine prices
without any outside system.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional, TYPE_CHECKING

from quote_pricing.models.schemas import DemandData, LoyaltySnapshot

if TYPE_CHECKING:
    from quote_pricing.models.state import PricingContext

DemandLookup = Callable[["PricingContext"], Awaitable[DemandData]]
CostOfLivingLookup = Callable[[str], Awaitable[Optional[float]]]
LoyaltyLookup = Callable[[str], Awaitable[Optional[LoyaltySnapshot]]]
MarketConditionsLookup = Callable[["PricingContext"], Awaitable[Optional[float]]]


async def neutral_demand(context: "PricingContext") -> DemandData:
    return DemandData()


async def no_cost_of_living(zip_code: str) -> Optional[float]:
    return None


async def no_loyalty_data(customer_id: str) -> Optional[LoyaltySnapshot]:
    return None


async def neutral_market(context: "PricingContext") -> Optional[float]:
    return None


class ExternalLookups:
    """Bundle of the demand, cost-of-living, loyalty and market lookups."""

    def __init__(
        self,
        demand: DemandLookup | None = None,
        cost_of_living: CostOfLivingLookup | None = None,
        loyalty: LoyaltyLookup | None = None,
        market_conditions: MarketConditionsLookup | None = None,
    ):
        self.demand: DemandLookup = demand or neutral_demand
        self.cost_of_living: CostOfLivingLookup = cost_of_living or no_cost_of_living
        self.loyalty: LoyaltyLookup = loyalty or no_loyalty_data
        self.market_conditions: MarketConditionsLookup = market_conditions or neutral_market
