"""SoulThread: personalized newsletters from live news in the reader's voice."""

__version__ = "1.0.0"
