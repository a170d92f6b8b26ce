from __future__ import annotations

import json
import logging
import shlex
from typing import Any, Dict, List

from capability_router.errors.codes import ErrorCode
from capability_router.errors.map_error import CliFailure
from capability_router.execution.normalizer import envelope_error, normalize_error, normalize_result
from capability_router.registry.types import CliConfig, OperationCard
from capability_router.schemas.envelope import EnvelopeError, ResultEnvelope, RouteReasonCode, RouteSource
from capability_router.transport.client import TransportClient

from ._template import MissingTemplateValue, fill

logger = logging.getLogger(__name__)


def build_cli_args(config: CliConfig, params: Dict[str, Any]) -> List[str]:
    """Expand the command template into an argument vector.

    Raises:
        MissingTemplateValue: If a placeholder has no value in ``params``.
    """
    args = [fill(token, params) for token in shlex.split(config.command)]
    if config.json_fields:
        args += ["--json", ",".join(config.json_fields)]
    if config.jq:
        args += ["--jq", config.jq]
    return args


def parse_cli_data(stdout: str) -> Any:
    """Decode CLI JSON output; blank output decodes to an empty object."""
    if not stdout.strip():
        return {}
    return json.loads(stdout)


async def run_cli_adapter(
    client: TransportClient,
    params: Dict[str, Any],
    card: OperationCard,
    *,
    reason: RouteReasonCode = RouteReasonCode.CARD_PREFERRED,
) -> ResultEnvelope:
    route = RouteSource.CLI
    capability_id = card.capability_id
    if client.cli is None or card.cli is None:
        return normalize_error(
            envelope_error(
                ErrorCode.ADAPTER_UNSUPPORTED,
                f"Route 'cli' is not implemented for task '{capability_id}'",
                {"route": route.value, "task": capability_id},
            ),
            route,
            capability_id=capability_id,
            reason=reason,
        )
    try:
        args = build_cli_args(card.cli, params)
    except MissingTemplateValue as e:
        return normalize_error(
            envelope_error(ErrorCode.VALIDATION, f"Missing value for '{e.field}' in command template"),
            route,
            capability_id=capability_id,
            reason=reason,
        )

    logger.debug("run_cli_adapter(%s): %s %s", capability_id, client.cli_binary, args[:2])
    try:
        run = await client.cli.run(client.cli_binary, args)
    except Exception as e:
        return normalize_error(e, route, capability_id=capability_id, reason=reason)

    if run.exit_code != 0:
        return normalize_error(
            CliFailure(exit_code=run.exit_code, stderr=run.stderr, binary=client.cli_binary),
            route,
            capability_id=capability_id,
            reason=reason,
        )
    try:
        data = parse_cli_data(run.stdout)
    except ValueError as e:
        parse_error = EnvelopeError(
            code=ErrorCode.SERVER, message=f"Failed to parse CLI JSON output: {e}", retryable=False
        )
        return normalize_error(parse_error, route, capability_id=capability_id, reason=reason)
    return normalize_result(data, route, capability_id=capability_id, reason=reason)
