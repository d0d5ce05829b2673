from canvasnotes.api.graphql.schema import GraphContext, graphql_router, schema

__all__ = ["GraphContext", "graphql_router", "schema"]
