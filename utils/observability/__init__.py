"""Observability utilities for Cogent.

Vendor-neutral tracing: the @observe decorator creates OpenTelemetry spans
for agent runs, reasoning loops and model calls when an OpenTelemetry SDK is
configured by the host application, and is a no-op otherwise.
"""

from .observe import observe

__all__ = ["observe"]
