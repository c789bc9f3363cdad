class AppError(Exception):
    """Base app error."""


class ValidationError(AppError):
    pass


class NotFoundError(AppError):
    pass


class ExtractionError(AppError):
    """A supplier document could not be read or decoded."""


class PersistenceError(AppError):
    """The catalog store rejected or failed a write/read."""


class ConfigError(AppError):
    pass
