"""genguard — conditional regeneration for generated-code build nodes."""

__version__ = "0.1.0"
