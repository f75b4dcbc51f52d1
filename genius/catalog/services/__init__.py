"""Catalog services (use-case layer over the storage ports)."""

from .resources import Operation, Phase, ResourceRepository

__all__ = ["Operation", "Phase", "ResourceRepository"]
