"""Exceptions raised by the modeller.

All errors derive from ``ModellerError`` so callers that only care about
"did the schema operation fail" can catch a single type.  Transport-level
failures are never swallowed: they are wrapped with the name of the object
being worked on and re-raised with the original exception chained.
"""


class ModellerError(Exception):
    """A DDL-issuing or model-building operation failed.

    Attributes:
        object_name: Name of the table, column or index involved, if known.
    """

    def __init__(self, message: str, object_name: str | None = None) -> None:
        super().__init__(message)
        self.object_name = object_name


class IntrospectionError(ModellerError):
    """Reading structural metadata from the live database failed."""

    pass


class UnsupportedFeatureError(ModellerError):
    """A dialect was asked to do something it structurally cannot.

    Example: SET columns on PostgreSQL.
    """

    pass


class UnsupportedTypeError(ModellerError):
    """An introspected or modelled type has no known Column variant.

    This indicates a programming or compatibility bug rather than a normal
    runtime condition.
    """

    pass
