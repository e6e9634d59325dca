"""Configuration package: settings, logging and prompt templates."""
