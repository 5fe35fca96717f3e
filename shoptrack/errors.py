"""Exception types raised by the ShopTrack data and navigation layers."""


class ShopTrackError(Exception):
    """Base exception for ShopTrack errors."""
    pass


class StorageOpenError(ShopTrackError):
    """The database file could not be opened or initialised."""
    pass


class SchemaError(ShopTrackError):
    """Schema version mismatch or failed migration."""
    pass


class NotFoundError(ShopTrackError):
    """A referenced entity does not exist."""

    def __init__(self, entity, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class InsufficientStockError(ShopTrackError):
    """A sale asks for more units than a tracked product has in stock."""

    def __init__(self, product_name, requested, available):
        super().__init__(
            f"Not enough stock for {product_name}: "
            f"requested {requested}, available {available}")
        self.product_name = product_name
        self.requested = requested
        self.available = available


class EmptyCartError(ShopTrackError):
    """Checkout was attempted with an empty cart."""
    pass


class InputError(ValueError):
    """Invalid user input (blank names, non-positive amounts, bad dates)."""
    pass


class UnknownRouteError(LookupError):
    """A navigation identifier that is not part of the route registry."""
    pass
