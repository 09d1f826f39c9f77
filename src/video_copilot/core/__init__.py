"""Core data types and category schemas."""
