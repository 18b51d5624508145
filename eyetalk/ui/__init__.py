"""FastAPI web bridge and dashboard."""
