"""
Health-score circuit breaker for reverse-geocoding providers.

Each provider owns a rolling health score. Successes nudge it up slowly,
failures knock it down fast, and a provider whose score has dropped to the
threshold is skipped until enough successes bring it back. There is no
recovery timer: suggestions and the fast path still give a provider the odd
call while it is degraded but eligible.

State is process-local and mutated only from the event loop, between
suspension points, so no lock is taken.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List

logger = logging.getLogger(__name__)


@dataclass
class ProviderHealth:
    """Mutable health state for one provider."""
    health_score: int = 100
    consecutive_failures: int = 0
    total_successes: int = 0
    total_failures: int = 0


class HealthScoreCircuitBreaker:
    """
    Tracks provider health scores and gates provider eligibility.

    A provider is available iff its score is strictly above
    ``min_healthy_score``. Unknown providers are registered on first use.
    """

    def __init__(
        self,
        initial_score: int = 100,
        success_increment: int = 1,
        failure_penalty: int = 5,
        min_healthy_score: int = 20,
        max_score: int = 100
    ):
        self.initial_score = initial_score
        self.success_increment = success_increment
        self.failure_penalty = failure_penalty
        self.min_healthy_score = min_healthy_score
        self.max_score = max_score

        self._health: Dict[str, ProviderHealth] = {}

    def register(self, provider_name: str) -> ProviderHealth:
        """Create health state for a provider if it does not exist yet."""
        if provider_name not in self._health:
            self._health[provider_name] = ProviderHealth(health_score=self.initial_score)
        return self._health[provider_name]

    def get_health(self, provider_name: str) -> ProviderHealth:
        return self.register(provider_name)

    def health_score(self, provider_name: str) -> int:
        return self.register(provider_name).health_score

    def is_available(self, provider_name: str) -> bool:
        """Check if the provider's score clears the eligibility threshold."""
        return self.register(provider_name).health_score > self.min_healthy_score

    def record_success(self, provider_name: str) -> None:
        """Record a successful resolution and reset the failure streak."""
        health = self.register(provider_name)
        was_available = health.health_score > self.min_healthy_score

        health.health_score = min(self.max_score, health.health_score + self.success_increment)
        health.consecutive_failures = 0
        health.total_successes += 1

        if not was_available and health.health_score > self.min_healthy_score:
            logger.info(f"Provider {provider_name} recovered (health: {health.health_score})")
        else:
            logger.debug(f"Success recorded for {provider_name} (health: {health.health_score})")

    def record_failure(self, provider_name: str) -> None:
        """Record a failed resolution (exception, timeout or empty result)."""
        health = self.register(provider_name)
        was_available = health.health_score > self.min_healthy_score

        health.health_score = max(0, health.health_score - self.failure_penalty)
        health.consecutive_failures += 1
        health.total_failures += 1

        if was_available and health.health_score <= self.min_healthy_score:
            logger.warning(
                f"Circuit breaker OPENED for {provider_name} "
                f"(health: {health.health_score}, consecutive failures: {health.consecutive_failures})"
            )
        else:
            logger.debug(
                f"Failure recorded for {provider_name} "
                f"(health: {health.health_score}, consecutive failures: {health.consecutive_failures})"
            )

    def reset(self, provider_name: str) -> None:
        """Reset a provider to its initial score (admin operation)."""
        self._health[provider_name] = ProviderHealth(health_score=self.initial_score)
        logger.info(f"Health reset for {provider_name}")

    def get_status(self, provider_name: str) -> dict:
        """Get detailed health status for monitoring."""
        health = self.register(provider_name)
        return {
            'provider': provider_name,
            'available': health.health_score > self.min_healthy_score,
            'health_score': health.health_score,
            'consecutive_failures': health.consecutive_failures,
            'total_successes': health.total_successes,
            'total_failures': health.total_failures,
            'min_healthy_score': self.min_healthy_score,
        }

    def get_all_statuses(self) -> Dict[str, dict]:
        return {name: self.get_status(name) for name in self._health}

    def get_tracked_providers(self) -> List[str]:
        return list(self._health.keys())
