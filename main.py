"""Main entry point for running the FastAPI application with auto-reload."""
import uvicorn

from jobboard.config import settings

if __name__ == "__main__":
    print(f"Starting {settings.app_name} v{settings.version}")
    print(f"Debug mode: {settings.debug}")
    print(f"Database: {settings.db.url.split('@')[-1] if '@' in settings.db.url else 'SQLite'}")
    print(f"Scoring model: {settings.scoring.model} (configured: {bool(settings.scoring.api_key)})")
    print(f"Auto-reload: {'Enabled' if settings.debug else 'Disabled'}")
    print("-" * 50)

    uvicorn.run(
        "jobboard.api:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        reload_dirs=["jobboard", "matcher"] if settings.debug else None,
        log_level=settings.logging.level.lower(),
    )
