"""Post-deployment verification checks.

Each ``check_*`` function performs one probe and returns a ``CheckResult``
without raising, so the management ``health`` command can report every
check independently. ``verify_deployment`` runs them in order and raises on
the first failure, which is what the deployment sequence needs.
"""

import logging

import httpx

from registry_ops.adapters.base import ContainerRuntime
from registry_ops.adapters.registry_api import RegistryApiClient
from registry_ops.config.models import CheckResult, OpsConfig
from registry_ops.errors import VerificationError

logger = logging.getLogger(__name__)

PING_TOKEN = "pong"
HEALTH_OK = "ok"


def check_ping(api: RegistryApiClient) -> CheckResult:
    """Liveness endpoint must return the ``pong`` token."""
    try:
        body = api.ping()
    except httpx.HTTPError as e:
        return CheckResult(name="ping", ok=False, detail=f"unreachable: {e}")
    if PING_TOKEN in body:
        return CheckResult(name="ping", ok=True, detail=PING_TOKEN)
    return CheckResult(name="ping", ok=False, detail=f"unexpected body: {body[:80]!r}")


def check_health(api: RegistryApiClient) -> CheckResult:
    """Health endpoint must report ``status == "ok"``."""
    try:
        payload = api.health()
    except (httpx.HTTPError, ValueError) as e:
        return CheckResult(name="health", ok=False, detail=f"unreachable or invalid: {e}")
    status = payload.get("status")
    if status == HEALTH_OK:
        return CheckResult(name="health", ok=True, detail=f"status={status}", payload=payload)
    return CheckResult(name="health", ok=False, detail=f"status={status!r}", payload=payload)


def check_servers(api: RegistryApiClient) -> CheckResult:
    """Listing endpoint must report a positive ``metadata.count``."""
    try:
        count = api.server_count()
    except (httpx.HTTPError, ValueError) as e:
        return CheckResult(name="servers", ok=False, detail=f"unreachable or invalid: {e}")
    if count is not None and count > 0:
        return CheckResult(name="servers", ok=True, detail=f"found {count} servers")
    return CheckResult(name="servers", ok=False, detail=f"count={count}")


def check_container(runtime: ContainerRuntime, name: str) -> CheckResult:
    running = runtime.container_running(name)
    return CheckResult(
        name=f"container:{name}",
        ok=running,
        detail="running" if running else "not running",
    )


def verify_deployment(
    config: OpsConfig,
    runtime: ContainerRuntime,
    api: RegistryApiClient,
    on_result=None,
) -> list[CheckResult]:
    """Run every verification check, stopping at the first failure.

    Order: ping, health, servers, API container, database container.

    Args:
        config: Operator configuration (container names, log tail).
        runtime: Container runtime.
        api: Registry API client.
        on_result: Optional callback invoked with each CheckResult as it
            completes (used by the CLI for progress output).

    Returns:
        All CheckResults (every one ``ok``).

    Raises:
        VerificationError: On the first failing check, carrying the most
            recent stack logs.
    """
    checks = [
        lambda: check_ping(api),
        lambda: check_health(api),
        lambda: check_servers(api),
        lambda: check_container(runtime, config.api_container),
        lambda: check_container(runtime, config.db_container),
    ]

    results: list[CheckResult] = []
    for check in checks:
        result = check()
        if on_result is not None:
            on_result(result)
        if not result.ok:
            logger.debug("Verification check %s failed: %s", result.name, result.detail)
            raise VerificationError(
                result.name,
                result.detail,
                logs=runtime.logs(tail=config.failure_log_tail),
            )
        results.append(result)
    return results
