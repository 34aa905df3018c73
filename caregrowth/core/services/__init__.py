"""Core services: chunk scoring, answer synthesis, search and ingestion."""
