"""Configuration loading for graph definitions and the min-SDK allow-list."""
