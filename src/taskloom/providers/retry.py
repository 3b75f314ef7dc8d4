"""
Retry executor for single provider calls.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from taskloom.providers.exceptions import extract_error_message, is_retryable_error
from taskloom.providers.models import CallParams, ProviderFn, ProviderResponse, Role

logger = logging.getLogger(__name__)

MAX_RETRIES = 2
INITIAL_RETRY_DELAY = 1.0  # seconds


class RetryExecutor:
    """
    Wraps one provider call with bounded retries and exponential backoff.

    Only transient errors (see ``is_retryable_error``) are retried; the
    delay before retry ``n`` (1-based) is ``initial_delay * 2 ** (n - 1)``.
    """

    def __init__(
        self,
        max_retries: int = MAX_RETRIES,
        initial_delay: float = INITIAL_RETRY_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.sleep = sleep

    def delay_for(self, retry: int) -> float:
        return self.initial_delay * 2 ** (retry - 1)

    async def attempt(
        self,
        provider_fn: ProviderFn,
        call_params: CallParams,
        provider_name: str,
        model_id: str,
        role: Role | str,
        *,
        debug: bool = False,
    ) -> ProviderResponse:
        """
        Call ``provider_fn`` until it succeeds or retries run out.

        Args:
            provider_fn: Provider function to call.
            call_params: Parameters for the call.
            provider_name: Provider name (for logging).
            model_id: Model identifier (for logging).
            role: Role being attempted (for logging).
            debug: Log every attempt and outcome at INFO.

        Returns:
            The provider response.

        Raises:
            Exception: The provider's error, once it is non-retryable or the
                retries are exhausted.
        """
        role_name = getattr(role, "value", role)
        fn_name = getattr(provider_fn, "__name__", type(provider_fn).__name__)
        total = self.max_retries + 1
        retries = 0

        while True:
            if debug:
                logger.info(
                    f"Attempt {retries + 1}/{total} calling {fn_name} "
                    f"(Provider: {provider_name}, Model: {model_id}, Role: {role_name})"
                )

            try:
                response = await provider_fn(call_params)
            except Exception as e:
                logger.warning(
                    f"Attempt {retries + 1} failed for role {role_name} "
                    f"({fn_name} / {provider_name}): {extract_error_message(e)}"
                )

                if retries < self.max_retries and is_retryable_error(e):
                    retries += 1
                    delay = self.delay_for(retries)
                    logger.info(f"Provider error looks transient. Retrying in {delay:g}s...")
                    await self.sleep(delay)
                    continue

                if retries >= self.max_retries:
                    logger.error(
                        f"Max retries reached for role {role_name} ({fn_name} / {provider_name})."
                    )
                raise

            if debug:
                logger.info(
                    f"{fn_name} succeeded for role {role_name} "
                    f"(Provider: {provider_name}) on attempt {retries + 1}"
                )
            return response
