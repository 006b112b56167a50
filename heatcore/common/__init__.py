"""Configuration loading shared across heatcore."""
