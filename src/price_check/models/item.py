from dataclasses import dataclass

LISTING_STATUSES = ("active", "completed", "ended")


@dataclass(frozen=True)
class Amount:
    """A monetary value in a given currency."""
    value: float = 0.0
    currency: str = "USD"


@dataclass(frozen=True)
class Item:
    """A single marketplace listing, normalized from the provider response."""
    item_id: str
    title: str
    price: Amount
    category_id: str = ""
    category_name: str = ""
    condition: str = ""
    condition_id: str = ""
    listing_status: str = "active"  # active, completed or ended
    start_time: str = ""
    end_time: str = ""
    shipping_cost: Amount | None = None
    watch_count: int = 0
    bid_count: int = 0
    subtitle: str = ""
    global_id: str = ""
    view_url: str = ""
    gallery_url: str = ""
    location: str = ""
    country: str = ""
    listing_type: str = ""
    buy_it_now: bool = False
    product_id_type: str = ""
    product_id: str = ""

    @property
    def price_value(self) -> float:
        return self.price.value

    @property
    def total_price(self) -> float:
        shipping = self.shipping_cost.value if self.shipping_cost else 0.0
        return self.price.value + shipping
