"""Configuration, startup checks and logging setup."""
