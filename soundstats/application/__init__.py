"""Application layer: use cases, workflows and shared utilities."""
