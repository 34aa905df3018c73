"""Outbound adapters: content sources, model providers and chunk stores."""
