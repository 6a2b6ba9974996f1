"""Monorepo task orchestrator driven by rask.yaml files."""

__version__ = "0.1.0"
