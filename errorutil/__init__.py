"""Analyze, validate and assign MeshKit error codes in Go source trees."""

__version__ = "0.1.0"
