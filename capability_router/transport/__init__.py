from .cli_runner import CliRunResult, SafeCliRunner
from .client import TransportClient
from .graphql import GraphqlResponse, HttpxGraphqlTransport
from .rest import HttpxRestTransport

__all__ = [
    "CliRunResult",
    "GraphqlResponse",
    "HttpxGraphqlTransport",
    "HttpxRestTransport",
    "SafeCliRunner",
    "TransportClient",
]
