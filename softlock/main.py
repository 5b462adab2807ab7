from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .shared.config import settings
from .shared.logging import get_logger
from .auth.router import router as auth_router
from .locks.engine import LockingOptions
from .locks.events import EventDispatcher
from .locks.router import router as locks_router
from .locks.subjects import SubjectRegistry

logger = get_logger(__name__)

app = FastAPI(
    title="softlock API", version="0.1.0", openapi_url=f"{settings.API_PREFIX}/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# lock collaborators live on app.state; routers pick them up per request
app.state.lock_options = LockingOptions.from_settings(settings)
app.state.lock_dispatcher = EventDispatcher.from_options(app.state.lock_options)
app.state.lock_registry = SubjectRegistry()


@app.get(f"{settings.API_PREFIX}/healthz")
def healthz():
    return {"status": "ok", "app": "softlock"}


app.include_router(auth_router)
app.include_router(locks_router)
logger.debug("softlock app ready (env=%s)", settings.APP_ENV)
