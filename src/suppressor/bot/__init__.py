"""Discord-facing parts of the bot: runtime wiring and cogs."""
