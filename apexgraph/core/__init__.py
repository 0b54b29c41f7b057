"""Core domain: models, engine, config, and use cases."""
