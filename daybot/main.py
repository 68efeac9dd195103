# daybot/main.py

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool

from daybot.api.routers import health, notifications_whatsapp, webhook_whatsapp
from daybot.core.config import Settings, configure_logging
from daybot.core.services import Services, build_services

# tope para esperar al tick en curso al apagar
SHUTDOWN_TIMEOUT_SECONDS = 10.0

DESCRIPTION = """
A WhatsApp bot to manage a personal task list and time-of-day reminders.

**What it does**
- **Commands:** `/start`, `/addtask`, `/listtasks`, `/deletetask`, `/deletealltasks`, `/remind <text> at <time>`, `/listreminders`.
- **Reminders:** times like `3:00 PM` are resolved to today in the configured timezone and stored as absolute UTC instants.
- **Dispatcher:** a background sweep (every `SWEEP_INTERVAL_SECONDS`) sends due reminders through the WhatsApp Cloud API and removes them.
- **Storage:** Supabase tables `reminders` and `tasks`, one row per user with a JSON array.

**Notes**
- Meta calls `GET/POST /webhooks/whatsapp`; operation endpoints need the `X-Admin-Token` header.
"""


def create_app(services: Optional[Services] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.services is None
        if owned:
            settings = Settings.from_env()
            configure_logging(settings)
            app.state.services = build_services(settings)
        svc: Services = app.state.services
        if svc.settings.run_scheduler:
            svc.scheduler.start()
        try:
            yield
        finally:
            # join bloqueante: fuera del event loop
            await run_in_threadpool(svc.scheduler.stop, SHUTDOWN_TIMEOUT_SECONDS)
            if owned:
                await run_in_threadpool(svc.close)
                app.state.services = None

    app = FastAPI(
        title="Daily Activities Bot",
        description=DESCRIPTION,
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.services = services

    app.include_router(webhook_whatsapp.router)        # /webhooks/whatsapp
    app.include_router(notifications_whatsapp.router)  # /api/notify/whatsapp/...
    app.include_router(health.router)                  # /health/...

    @app.get("/")
    def read_root():
        return {"message": "Welcome to the Daily Activities Bot"}

    @app.get("/healthz", tags=["Health"])
    def healthz():
        return {"ok": True}

    return app


app = create_app()
