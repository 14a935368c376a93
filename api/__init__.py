"""FastAPI routers and the application object (api.main:app)."""
