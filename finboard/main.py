from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from finboard.api import api_router
from finboard.core.config import settings
from finboard.core.db import init_db
from finboard.core.logger import logger
from finboard.core.redis_client import check_redis_connection
from finboard.mcp_server import mcp

mcp_app = mcp.http_app(path='/mcp')


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    check_redis_connection()
    logger.info("Database initialized")
    async with mcp_app.lifespan(app):
        yield
    logger.info("Shutting down")


app = FastAPI(lifespan=lifespan, title="Finboard API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True
)

app.include_router(api_router)
app.mount("/ai", mcp_app)


@app.get("/")
async def root():
    return {"message": "Finboard API is running", "version": "1.0.0"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
