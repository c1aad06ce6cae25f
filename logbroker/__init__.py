"""Building blocks of a publish/subscribe router: commit logs, tracking, scheduling and session state."""

__version__ = "0.1.0"

__all__ = [
    "connection",
    "logs",
    "messages",
    "readyqueue",
    "scheduler",
    "sessions",
    "slab",
    "state",
    "tracker",
    "waiters",
]