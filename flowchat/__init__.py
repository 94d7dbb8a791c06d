"""Flow chat orchestrator - tool-calling chat endpoint for workflow agents."""

__version__ = "0.1.0"
