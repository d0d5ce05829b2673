from contextlib import contextmanager

from graphql import GraphQLError

from canvasnotes.core.errors import GraphError


@contextmanager
def graphql_errors():
    """Re-raise service errors as GraphQL errors carrying extensions.code."""
    try:
        yield
    except GraphError as e:
        raise GraphQLError(e.message, extensions=e.to_extensions()) from e
