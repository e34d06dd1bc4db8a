"""
Price/stock feed record schemas.
"""

from decimal import Decimal
from pydantic import Field
from typing import Optional

from models.base import BaseSchema


class SizeStock(BaseSchema):
    """Stock for one size, keyed by its barcode."""
    code_external: Optional[str] = None
    stock_quantity: int = 0


class PriceUpdateRecord(BaseSchema):
    """
    Price and stock for one product in the light feed.

    Customer price is the suggested retail price when present,
    otherwise the cost price. Net is preferred over gross.
    """
    external_id: str
    price_net: Optional[Decimal] = None
    price_gross: Optional[Decimal] = None
    srp_net: Optional[Decimal] = None
    srp_gross: Optional[Decimal] = None
    stock_quantity: int = 0
    sizes: list[SizeStock] = Field(default_factory=list)

    @property
    def customer_price(self) -> Optional[Decimal]:
        for value in (self.srp_net, self.srp_gross, self.price_net, self.price_gross):
            if value is not None:
                return value
        return None

    def price_metadata(self) -> dict:
        """Cost and SRP values stored on each variant's metadata."""
        cost = self.price_net if self.price_net is not None else self.price_gross
        values = {
            "cost_price": cost,
            "cost_price_net": self.price_net,
            "cost_price_gross": self.price_gross,
            "srp_net": self.srp_net,
            "srp_gross": self.srp_gross,
        }
        return {key: str(value) for key, value in values.items() if value is not None}
