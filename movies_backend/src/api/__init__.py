"""
FastAPI movies backend package.

Build the application with `src.api.main.create_app` (or the `get_app`
factory), or run the server with `python -m src.api`.
"""
