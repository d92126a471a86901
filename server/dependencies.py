"""FastAPI dependencies for pipeline access."""


def get_pipeline():
    """Dependency to get pipeline instance (singleton pattern)."""
    from pipeline.facade import CatalogPipeline

    if not hasattr(get_pipeline, "_instance"):
        get_pipeline._instance = CatalogPipeline.from_config()
    return get_pipeline._instance
