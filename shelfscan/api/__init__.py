"""HTTP layer: FastAPI app, dependencies, routers."""
