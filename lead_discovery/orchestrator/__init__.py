"""Run orchestration: distribute search terms and drive the worker pool."""

from .service import DiscoveryOrchestrator, WorkerFactory

__all__ = ["DiscoveryOrchestrator", "WorkerFactory"]
