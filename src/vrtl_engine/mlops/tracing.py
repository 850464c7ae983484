"""
MLflow tracing integration for snapshot observability.
Provides span-based tracing for snapshot runs, provider calls and scoring.
Disabled unless MLFLOW_ENABLE_TRACING is set.
"""
import logging
import time
from typing import Optional, Dict, Any, Callable
from functools import wraps
from contextlib import contextmanager

import mlflow

from ..config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class MLflowTracer:
    """Handles MLflow tracing for snapshot runs."""

    def __init__(self, enabled: Optional[bool] = None):
        self.enabled = settings.MLFLOW_ENABLE_TRACING if enabled is None else enabled
        if self.enabled:
            try:
                if settings.MLFLOW_TRACKING_URI:
                    mlflow.set_tracking_uri(settings.MLFLOW_TRACKING_URI)
                logger.info("MLflow tracing enabled")
            except Exception as e:
                logger.warning(f"Failed to initialize MLflow tracing: {e}")
                self.enabled = False
        else:
            logger.debug("MLflow tracing disabled")

    @contextmanager
    def span(
        self,
        name: str,
        span_type: str = "UNKNOWN",
        attributes: Optional[Dict[str, Any]] = None,
        inputs: Optional[Dict[str, Any]] = None
    ):
        """
        Create a traced span for an operation.

        Args:
            name: Name of the span (e.g., "snapshot.run", "provider.call")
            span_type: Type of span (e.g., "LLM", "CHAIN", "TOOL")
            attributes: Additional metadata for the span
            inputs: Input data to the operation
        """
        if not self.enabled:
            yield None
            return

        with mlflow.start_span(name=name, span_type=span_type) as span:
            if attributes:
                span.set_attributes(attributes)
            if inputs:
                span.set_inputs(inputs)

            start_time = time.time()
            yield span
            span.set_attribute("latency_ms", int((time.time() - start_time) * 1000))

    def _annotate_current(self, attributes: Dict[str, Any], what: str):
        if not self.enabled:
            return
        try:
            current_span = mlflow.get_current_active_span()
            if current_span:
                current_span.set_attributes(attributes)
        except Exception as e:
            logger.warning(f"Failed to trace {what}: {e}")

    def trace_provider_call(
        self,
        provider: str,
        model: str,
        prompt_key: str,
        parse_status: str,
        latency_ms: Optional[int] = None
    ):
        """Log details of a provider call within the current span."""
        attributes = {
            "provider": provider,
            "model": model,
            "prompt_key": prompt_key,
            "parse_status": parse_status,
        }
        if latency_ms is not None:
            attributes["provider_latency_ms"] = latency_ms
        self._annotate_current(attributes, "provider call")

    def trace_scoring(self, overall_score: int, score_by_provider: Dict[str, int]):
        """Log the snapshot's final scores."""
        attributes: Dict[str, Any] = {"overall_score": overall_score}
        for provider, score in score_by_provider.items():
            attributes[f"score.{provider}"] = score
        self._annotate_current(attributes, "scoring")


def traced_operation(name: str, span_type: str = "CHAIN"):
    """
    Decorator to automatically trace a function as a span.

    Usage:
        @traced_operation("snapshot.detail", span_type="TOOL")
        def get_snapshot_detail(snapshot_id):
            ...
    """
    def decorator(func: Callable):
        @wraps(func)
        def wrapper(*args, **kwargs):
            with tracer.span(name=name, span_type=span_type):
                return func(*args, **kwargs)
        return wrapper
    return decorator


# Global tracer instance
tracer = MLflowTracer()
