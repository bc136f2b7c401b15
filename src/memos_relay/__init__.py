"""memos-relay - MemOS long-term memory for chat-agent hosts.

Attaches to a host's lifecycle hooks to recall memories before a turn,
store new messages after it, and report user corrections as feedback.
"""

__version__ = "2.0.0"
__all__ = ["__version__"]
