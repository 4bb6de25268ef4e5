# citymarket/main.py
from fastapi import FastAPI
from .api.routes import router as api_router
from .auth import AuthSessionManager
from .config import load_settings
from .mock_data import categories, mock_items
from .provider import GoTrueProvider
from .scheduler import start_scheduler
from .store import ListingStore
from .utils import logger

def create_app(settings=None, provider=None, store=None):
    settings = settings or load_settings()
    provider = provider or GoTrueProvider(settings)

    # create FastAPI instance
    app = FastAPI(title="CityMarket")
    app.state.settings = settings
    app.state.store = store or ListingStore(mock_items, categories)
    app.state.auth = AuthSessionManager(provider, settings)
    app.state.scheduler = None
    app.include_router(api_router)

    @app.on_event("startup")
    async def on_startup():
        if settings.is_placeholder:
            logger.warning("Supabase credentials missing; sign-in is disabled until SUPABASE_URL and SUPABASE_ANON_KEY are set")
        await app.state.auth.start()
        app.state.scheduler = start_scheduler(app.state.auth, settings.auth_refresh_minutes)

    @app.on_event("shutdown")
    async def on_shutdown():
        if app.state.scheduler is not None:
            app.state.scheduler.shutdown(wait=False)
        app.state.auth.close()
        close = getattr(provider, "close", None)
        if close is not None:
            await close()

    return app

app = create_app()
