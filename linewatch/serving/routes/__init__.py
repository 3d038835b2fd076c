"""
Route modules for the projections API.

- health_router: health and Prometheus metrics
- projections_router: board, manual refresh and cache clear

Usage in app.py:
    from linewatch.serving.routes.health import router as health_router
    from linewatch.serving.routes.projections import router as projections_router

    app.include_router(health_router)
    app.include_router(projections_router)
"""
