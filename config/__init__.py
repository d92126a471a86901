"""Configuration loading for the pipeline."""
