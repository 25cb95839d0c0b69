"""Discord front end for the registration engine.

The command handlers live in ``bots.commands`` and the process entry point in
``bots.runtime``.
"""

__all__ = ["commands", "config", "messages", "runtime"]
