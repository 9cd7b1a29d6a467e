"""Custom exceptions for load blasting and driver responses."""


class InvalidRadiusError(Exception):
    """Raised when a blast radius is not a positive number of miles."""
    pass


class InvalidExpiryError(Exception):
    """Raised when a blast would expire immediately or in the past."""
    pass


class MissingCoordinatesError(Exception):
    """Raised when a load has no pickup coordinates to measure drivers against."""
    pass


class LoadAlreadyBlastedError(Exception):
    """Raised when a load already has an open blast."""
    pass


class LoadNotBlastableError(Exception):
    """Raised when a load is not in a status that can be offered to drivers."""
    pass


class BlastNotFoundError(Exception):
    """Raised when a blast cannot be found."""
    pass


class OfferNotFoundError(Exception):
    """Raised when a driver was never offered the blast."""
    pass
