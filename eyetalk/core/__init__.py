"""Configuration, session control, events and logging."""
