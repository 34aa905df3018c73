"""Typer command-line adapter."""
