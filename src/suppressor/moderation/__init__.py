"""Moderation core: rules, state and the decision pipeline."""
