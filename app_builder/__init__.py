"""Application builder: scaffolds and customises a new Rails application.

Quick usage::

    import asyncio

    from app_builder.config import Config
    from app_builder.pipeline import build_pipeline

    pipeline = build_pipeline(Config(app_name="blog"))
    state = asyncio.run(pipeline.run())
"""

__version__ = "0.1.0"
