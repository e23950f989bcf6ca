# backend/main.py
import logging

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from database import init_db
from schemas.common import ApiResponse
from utils.errors import ShopError, ErrorCode

# Routers
from routes.cart import router as cart_router
from routes.checkout import router as checkout_router
from routes.orders import router as orders_router
from routes.admin import router as admin_router
from routes.users import router as users_router
from routes.webhooks import router as webhooks_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create tables on startup
init_db()

app = FastAPI(title="Storefront API", version="1.0.0")

# CORS Configuration
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
if settings.FRONTEND_URL and settings.FRONTEND_URL not in origins:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Domain errors become the failure variant of the response envelope
@app.exception_handler(ShopError)
async def shop_error_handler(request: Request, exc: ShopError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    body = ApiResponse.fail(exc.code, exc.message, exc.details)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json", by_alias=True))

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()]
    body = ApiResponse.fail(ErrorCode.VALIDATION_ERROR, "Validation Error", details)
    return JSONResponse(status_code=400, content=body.model_dump(mode="json", by_alias=True))

# Anything unexpected still answers with the envelope
@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    body = ApiResponse.fail(ErrorCode.INTERNAL_ERROR, "Internal Server Error")
    return JSONResponse(status_code=500, content=body.model_dump(mode="json", by_alias=True))

# Router registration
app.include_router(cart_router)
app.include_router(checkout_router)
app.include_router(orders_router)
app.include_router(admin_router)
app.include_router(users_router)
app.include_router(webhooks_router)

@app.get("/")
def read_root():
    return {"message": "Storefront API is running"}
