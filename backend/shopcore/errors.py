"""
Error kinds returned by the stores and services.

The HTTP layer maps each kind to a status code (see ``shopcore.api.errors``);
anything that is not a ``ShopError`` is treated as an internal failure.
"""


class ShopError(Exception):
    pass


class NotFound(ShopError):
    pass


class InvalidInput(ShopError):
    pass


class Conflict(ShopError):
    pass


class InsufficientStock(ShopError):
    pass


class ProviderUnavailable(ShopError):
    pass


class ProviderNotRegistered(ProviderUnavailable):
    pass


class Unavailable(ShopError):
    """A dependency (e.g. the database) is not configured."""
    pass
