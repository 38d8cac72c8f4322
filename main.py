from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from pymongo.errors import PyMongoError
from mongo_repository.config import settings
from mongo_repository.response import ResponseModel
from mongo_repository.middleware.logging_md import LoggingMiddleware
from mongo_repository.logging.logger import LogConfig
from mongo_repository.database.manager import DatabaseManager
from mongo_repository.exceptions.handler import BusinessException, global_exception_handler
from mongo_repository.repository.exceptions import RepositoryError
from apps.models import DOCUMENT_MODELS
from apps.catalog.api.router import router as catalog_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect MongoDB and create declared indexes before serving."""
    mongo = DatabaseManager.get_instance().mongo
    await mongo.connect()
    await mongo.ensure_indexes(DOCUMENT_MODELS)
    try:
        yield
    finally:
        await mongo.disconnect()


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Initialize logging configuration
LogConfig.setup_logging()

# Register global exception handlers
app.add_exception_handler(BusinessException, global_exception_handler)
app.add_exception_handler(RequestValidationError, global_exception_handler)
app.add_exception_handler(RepositoryError, global_exception_handler)
app.add_exception_handler(PyMongoError, global_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.add_middleware(LoggingMiddleware)

# Mount routers (prefix from config for easy override in private projects)
app.include_router(
    catalog_router,
    prefix=settings.API_V1_CATEGORIES_PREFIX,
    tags=["Catalog"]
)


@app.get("/health")
async def health():
    """Liveness plus a MongoDB ping."""
    mongo_ok = await DatabaseManager.get_instance().mongo.ping()
    return ResponseModel.success(data={"mongodb": "up" if mongo_ok else "down"})


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
