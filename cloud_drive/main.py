import logging

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from cloud_drive.core.config import get_settings
from cloud_drive.core.errors import DriveError
from cloud_drive.routers import files, folders, navigation, views  # <--- important
from cloud_drive.routers.views import BASE_DIR

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Cloud Drive")

app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")

# include our routers
app.include_router(files.router)
app.include_router(folders.router)
app.include_router(navigation.router)
app.include_router(views.router)


# 401 / 403 / 400 come out as {"error": ...} like every other API failure
@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


# Anything that went wrong on the drive side becomes a 500 with the message forwarded
@app.exception_handler(DriveError)
async def drive_error(request: Request, exc: DriveError):
    logger.error(
        "[drive_error] request failed; method:%s;path:%s",
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"error": str(exc)})


# Last resort so a handler bug still answers with the JSON error shape
@app.exception_handler(Exception)
async def unexpected_error(request: Request, exc: Exception):
    logger.error(
        "[unexpected_error] unhandled exception; method:%s;path:%s",
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"error": str(exc)})
