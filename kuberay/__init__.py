"""Ray cluster life cycle management: resource models, an in-memory resource manager, request handlers and a settings command line."""

__version__ = "0.1.0"