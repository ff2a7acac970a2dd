"""Configuration loading for Suppressor."""
