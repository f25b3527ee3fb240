class BlockifyError(Exception):
    """
    Base exception for all blockify failures.
    """

    pass


class InvalidInputFormat(BlockifyError):
    """
    Raised in development mode when a payload cannot be decoded into
    structured data (transport failure).
    """

    pass


class SchemaConfigurationError(BlockifyError):
    """
    Raised when schemas, rules or registries are misconfigured.
    """

    pass
