"""
Vehicle Fuel State

The single piece of cross-entity mutable state in the system.
Only the Fuel Ledger writes `current_fuel`; everything else reads it.
"""

from decimal import Decimal

from pydantic import BaseModel, Field, model_validator


class VehicleSettings(BaseModel):
    """
    Vehicle fuel state plus the display currency.

    Invariant: 0 <= current_fuel <= capacity. Construction clamps
    rather than rejects, matching how the ledger treats every adjustment.
    """

    capacity: Decimal = Field(
        ...,
        gt=0,
        description="Tank size in litres"
    )
    current_fuel: Decimal = Field(
        default=Decimal("0"),
        description="Litres currently in the tank"
    )
    consumption_rate: Decimal = Field(
        ...,
        gt=0,
        description="Distance per litre of fuel"
    )
    fuel_unit_cost: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Price of one litre"
    )
    currency: str = Field(
        default="₹",
        max_length=8,
        description="Currency symbol (display only)"
    )

    @model_validator(mode='after')
    def clamp_current_fuel(self) -> 'VehicleSettings':
        self.current_fuel = clamp(self.current_fuel, self.capacity)
        return self

    def litres_for(self, distance: Decimal) -> Decimal:
        """Fuel burned over a distance."""
        return distance / self.consumption_rate

    @property
    def fill_percent(self) -> Decimal:
        return min(Decimal("100"), self.current_fuel / self.capacity * 100)

    @property
    def estimated_range(self) -> Decimal:
        """Distance the remaining fuel is good for."""
        return self.current_fuel * self.consumption_rate


def clamp(value: Decimal, capacity: Decimal) -> Decimal:
    """Clamp a fuel quantity into [0, capacity]."""
    return max(Decimal("0"), min(capacity, value))
