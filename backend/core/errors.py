# core/errors.py - error types shared by the query/response pipeline

class ConfigurationError(RuntimeError):
    """A deployment defect: missing sort mappings, unknown route names, etc.

    Never mapped to a client error; it reaches the global handler as a 500.
    """

class InvalidQueryParameterError(ValueError):
    """A client supplied a query parameter the endpoint cannot honour."""

    def __init__(self, parameter: str, value: str, message: str):
        super().__init__(message)
        self.parameter = parameter
        self.value = value
