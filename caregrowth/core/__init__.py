"""Domain models, ports and services."""
