"""Infrastructure adapters: persistence, connectors and CLI."""
