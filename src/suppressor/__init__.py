"""
Suppressor - moderation bot for a single Discord community

Core Components:

- **Moderation Pipeline**: evaluates every message and reaction against a fixed
  precedence of rules and issues at most one corrective action
- **Pattern Matcher**: named regex rules recognizing leaked private user ids
  and outage reports
- **Incident State**: persisted up/down flag toggled with the ``/down`` command
- **Correlation Table**: lets privileged members undo companion messages by
  reacting to the message that caused them
- **Interactive Console**: status and graceful shutdown of the live bot

Usage:
    from suppressor.main import main
    main()
"""
