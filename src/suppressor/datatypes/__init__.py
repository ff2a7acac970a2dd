"""Typed identifiers and moderation data structures."""
