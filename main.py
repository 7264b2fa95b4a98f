import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pymongo.database import Database

import config
import database
from database import get_db
from errors import register_error_handlers
from routers import auth, bootcamps, courses, reviews, users

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is not None:
        database.ensure_indexes(database.db)
        database.ensure_geo_index(database.db)
        logger.info("MongoDB connected: %s", database.db.name)
    else:
        logger.warning("DATABASE_URL / DATABASE_NAME not set; database unavailable")
    yield


app = FastAPI(title="DevCamper API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    if config.ENVIRONMENT == "development":
        logger.info("%s %s", request.method, request.url)
    return await call_next(request)


app.include_router(bootcamps.router, prefix=API_PREFIX)
app.include_router(courses.router, prefix=API_PREFIX)
app.include_router(reviews.router, prefix=API_PREFIX)
app.include_router(auth.router, prefix=API_PREFIX)
app.include_router(users.router, prefix=API_PREFIX)


@app.get("/")
def read_root():
    return {"message": "DevCamper API", "docs": "/docs"}


@app.get(f"{API_PREFIX}/health")
def health(db: Database = Depends(get_db)):
    """Check that the database is reachable and report collection sizes"""
    collections = {name: db[name].count_documents({}) for name in db.list_collection_names()}
    return {"success": True, "data": {"backend": "running", "database": db.name, "collections": collections}}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
