"""
Circuit breaker implementations for the location resolver.

Provider eligibility is gated by a rolling health score rather than a
failure counter with a recovery timeout.
"""

from .health_circuit_breaker import HealthScoreCircuitBreaker, ProviderHealth

__all__ = ['HealthScoreCircuitBreaker', 'ProviderHealth']
