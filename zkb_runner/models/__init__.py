"""Configuration and timing models for the runner."""
