"""Domain errors raised by the CRUD layer and translated by the routers."""


class ServiceError(Exception):
    """Base exception for persistence-level failures the API knows about."""


class EventNotFound(ServiceError):
    pass


class BookingNotFound(ServiceError):
    pass


class UserNotFound(ServiceError):
    pass


class BdeNotFound(ServiceError):
    """A referenced BDE UUID does not exist."""


class BookingAlreadyExists(ServiceError):
    pass


class UserAlreadyExists(ServiceError):
    pass


class ConfigurationError(Exception):
    """The service cannot start with the given environment."""
