"""FastAPI surface over the catalog pipeline."""
