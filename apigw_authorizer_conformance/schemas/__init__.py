"""Pydantic models of the authorizer properties and the runner configuration."""
