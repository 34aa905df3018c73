"""FastAPI HTTP adapter."""
