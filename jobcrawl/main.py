from contextlib import asynccontextmanager

from fastapi import FastAPI
from jobcrawl.routes import crawl_routes # pylint: disable=import-error
from jobcrawl.core.config import settings # pylint: disable=import-error


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    crawl_routes.shutdown_crawl_page()


app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION, lifespan=lifespan)

app.include_router(crawl_routes.router, prefix="/api", tags=["Jobs"])


@app.get("/")
def root():
    return {"message": f"Welcome to {settings.PROJECT_NAME}"}
