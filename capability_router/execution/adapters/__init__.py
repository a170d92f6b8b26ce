from .cli_adapter import build_cli_args, parse_cli_data, run_cli_adapter
from .graphql_adapter import run_graphql_adapter
from .registry import AdapterRegistry, Handler
from .rest_adapter import run_rest_adapter

__all__ = [
    "AdapterRegistry",
    "Handler",
    "build_cli_args",
    "parse_cli_data",
    "run_cli_adapter",
    "run_graphql_adapter",
    "run_rest_adapter",
]
