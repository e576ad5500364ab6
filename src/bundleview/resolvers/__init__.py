"""Resolvers making up the preview chain."""
