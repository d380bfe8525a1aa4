"""Shared primitives: error hierarchy, structured logging, settings."""
