"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidForecastInputError(DomainException):
    """Forecast snapshot violates the input contract (dates, horizon, amounts)"""

    pass


class InvalidStressParametersError(DomainException):
    """Stress scenario parameters are out of range"""

    pass


class InvalidStrategyTransitionError(DomainException):
    """Strategy status change not allowed from its current status"""

    pass
