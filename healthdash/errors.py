class HealthDataError(Exception):
    """Base class for failures reading the health data store."""


class ExportFormatError(HealthDataError):
    pass


class AuthorizationError(HealthDataError):
    pass


class UnitError(HealthDataError):
    pass
