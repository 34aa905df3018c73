"""Language model and embedding provider adapters."""
