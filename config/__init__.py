"""
Configuration for the Text2SQL system.

Each collaborator has its own frozen settings section; ``Config`` composes
them and can be built from environment variables.
"""
