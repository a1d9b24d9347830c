"""Agent digest mailer: daily listing digests for saved search agents."""

__version__ = "0.1.0"
