import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from friendzone.api.knock import router as knock_router
from friendzone.api.chat import router as chat_router
from friendzone.api import health_router
from friendzone.core.config import settings
from friendzone.knock.errors import KnockError
from friendzone.utils.redis_pool import close_redis

log = logging.getLogger("friendzone")
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_redis()


app = FastAPI(title="friendzone", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(KnockError)
async def knock_error_handler(request: Request, exc: KnockError):
    if exc.status_code >= 500:
        log.warning("%s %s -> %s", request.method, request.url.path, exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(knock_router)
app.include_router(chat_router)
app.include_router(health_router.router)
