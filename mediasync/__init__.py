"""Real-time synchronization engine for conversations and the post feed."""

__version__ = "0.1.0"
