"""Retry, timeout, circuit breaking and failover across an ordered provider list."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
)

from community_search.config import GatewayConfig
from community_search.errors import (
    AllProvidersUnavailableError,
    CircuitOpenError,
    InputRejectedError,
    ProviderError,
    ProviderPermanentError,
    ProviderTransientError,
)
from community_search.gateway.circuit_breaker import CircuitBreaker
from community_search.llm.base import LLMProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[LLMProvider], Awaitable[T]]


class ResilientGateway(Generic[T]):
    """Calls a primary provider and falls back through the rest in order.

    Each provider gets its own ``CircuitBreaker``. Transient failures are
    retried on the same provider up to ``max_retries`` times, permanent
    failures move straight to the next provider, and an open circuit skips the
    provider without any network attempt.
    """

    def __init__(
        self,
        name: str,
        providers: list[LLMProvider],
        config: GatewayConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize gateway.

        Args:
            name: Gateway name used in logs ("understanding", "embedding")
            providers: Providers in priority order, primary first
            config: Timeout, retry and breaker policy
            clock: Monotonic time source shared by the breakers
        """
        if not providers:
            raise ValueError(f"{name} gateway needs at least one provider")

        self.name = name
        self.providers = providers
        self.config = config or GatewayConfig()
        self.breakers = {
            provider.name: CircuitBreaker(
                provider.name,
                failure_threshold=self.config.failure_threshold,
                reset_timeout=self.config.reset_timeout,
                clock=clock,
            )
            for provider in providers
        }

    def _wait_strategy(self):
        if self.config.exponential_backoff:
            return wait_exponential(multiplier=self.config.retry_delay, min=self.config.retry_delay)
        return wait_fixed(self.config.retry_delay)

    async def call(self, operation: Operation) -> T:
        """Run ``operation`` against the first provider that succeeds.

        Args:
            operation: Coroutine function taking a provider and producing the result

        Returns:
            The first successful result

        Raises:
            InputRejectedError: Every attempted provider rejected the input
            AllProvidersUnavailableError: No provider could serve the request
        """
        errors: list[ProviderError] = []

        for provider in self.providers:
            try:
                result = await self._call_with_retry(provider, operation)
            except CircuitOpenError as e:
                logger.info(f"[{self.name}] Skipping {provider.name}: {e}")
                errors.append(e)
                continue
            except ProviderPermanentError as e:
                logger.error(f"[{self.name}] {provider.name} rejected request: {e}")
                errors.append(e)
                continue
            except ProviderTransientError as e:
                logger.error(f"[{self.name}] {provider.name} failed after retries: {e}")
                errors.append(e)
                continue

            if errors:
                logger.warning(f"[{self.name}] Served by fallback provider {provider.name}")
            return result

        if errors and all(isinstance(e, ProviderPermanentError) for e in errors):
            raise InputRejectedError(
                f"All {self.name} providers rejected the input",
                errors,
            )
        raise AllProvidersUnavailableError(
            f"All {self.name} providers unavailable: "
            + "; ".join(f"{e.provider}: {e}" for e in errors),
            errors,
        )

    async def _call_with_retry(self, provider: LLMProvider, operation: Operation) -> T:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.max_retries + 1),
            wait=self._wait_strategy(),
            retry=retry_if_exception_type(ProviderTransientError)
            & retry_if_not_exception_type(CircuitOpenError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                result = await self._attempt(provider, operation)
        return result

    async def _attempt(self, provider: LLMProvider, operation: Operation) -> T:
        breaker = self.breakers[provider.name]
        await breaker.before_call()

        try:
            result = await asyncio.wait_for(operation(provider), timeout=self.config.timeout)
        except asyncio.TimeoutError as e:
            await breaker.record_failure()
            raise ProviderTransientError(
                f"{provider.name} timed out after {self.config.timeout}s",
                provider.name,
            ) from e
        except ProviderPermanentError:
            # The provider answered, so its health is not in question
            await breaker.record_success()
            raise
        except ProviderTransientError:
            await breaker.record_failure()
            raise
        except asyncio.CancelledError:
            breaker.release()
            raise
        except Exception as e:
            logger.exception(f"[{self.name}] Unexpected error from {provider.name}")
            await breaker.record_failure()
            raise ProviderTransientError(f"Unexpected error from {provider.name}: {e}", provider.name) from e

        await breaker.record_success()
        return result

    def status(self) -> list[dict[str, object]]:
        """Breaker status per provider, in priority order."""
        return [self.breakers[provider.name].status() for provider in self.providers]

    async def aclose(self) -> None:
        for provider in self.providers:
            await provider.aclose()
