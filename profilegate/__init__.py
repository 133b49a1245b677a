"""profilegate -- verification-gated browser profile launcher with durable resource rotation."""

__version__ = "0.1.0"
