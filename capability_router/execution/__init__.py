from .execute import NO_ROUTE_MESSAGE, Adapter, RetryPolicy, execute, route_plan
from .normalizer import envelope_error, normalize_error, normalize_result, to_envelope_error
from .preflight import Preflight, PreflightProber, PreflightResult

__all__ = [
    "Adapter",
    "NO_ROUTE_MESSAGE",
    "Preflight",
    "PreflightProber",
    "PreflightResult",
    "RetryPolicy",
    "envelope_error",
    "execute",
    "normalize_error",
    "normalize_result",
    "route_plan",
    "to_envelope_error",
]
