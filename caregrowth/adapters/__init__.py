"""Inbound (HTTP, CLI) and outbound (providers, storage) adapters."""
