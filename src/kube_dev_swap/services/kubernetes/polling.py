"""Bounded, cancellable polling built on tenacity."""

from __future__ import annotations

from collections.abc import Callable

from tenacity import (
    RetryError,
    Retrying,
    retry_if_result,
    stop_after_delay,
    stop_when_event_set,
    wait_fixed,
)

from kube_dev_swap.integrations.kubernetes.exceptions import KubernetesTimeoutError
from kube_dev_swap.services.kubernetes.cancellation import CancellationToken


def poll_until(
    check: Callable[[], bool],
    *,
    timeout: float,
    interval: float,
    cancel: CancellationToken,
    description: str,
) -> None:
    """Call ``check`` every ``interval`` seconds until it returns True.

    Exceptions raised by ``check`` abort the wait immediately.

    Args:
        check: Condition to evaluate; True ends the wait.
        timeout: Upper bound for the whole wait in seconds.
        interval: Delay between two checks in seconds.
        cancel: Token checked before every tick; the sleep wakes up on cancel.
        description: What is being waited for, used in error messages.

    Raises:
        OperationCancelledError: If the token was cancelled.
        KubernetesTimeoutError: If ``timeout`` passed without success.
    """

    def tick() -> bool:
        cancel.raise_if_cancelled(description)
        return check()

    retrying = Retrying(
        retry=retry_if_result(lambda done: not done),
        stop=stop_after_delay(timeout) | stop_when_event_set(cancel.event),
        wait=wait_fixed(interval),
        sleep=cancel.wait,
        reraise=True,
    )
    try:
        retrying(tick)
    except RetryError:
        cancel.raise_if_cancelled(description)
        raise KubernetesTimeoutError(
            message=f"Timed out waiting for {description}",
            timeout_seconds=timeout,
        ) from None
