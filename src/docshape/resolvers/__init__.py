"""Resolvers layered over other resolvers."""

from docshape.resolvers.wrapped import InMemoryWrappedResolver, WrappedTransformResolver

__all__ = ["InMemoryWrappedResolver", "WrappedTransformResolver"]
