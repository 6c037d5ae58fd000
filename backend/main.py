# backend/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

load_dotenv()

from config import settings
from database import init_db
from utils.errors import StockBillingError, ValidationFailed

# Routers
from routes.auth import router as auth_router
from routes.inventory import router as inventory_router
from routes.products import router as products_router
from routes.bills import router as bills_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create tables for a fresh database; migrations live in alembic/
init_db()

app = FastAPI(title="Stock Billing API", version="1.0.0")

# CORS Configuration
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
if settings.FRONTEND_URL:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Typed service errors become {"error": code, "message": ...} bodies
@app.exception_handler(StockBillingError)
async def stock_billing_error_handler(request: Request, exc: StockBillingError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _field_path(loc):
    # ("body", "items", 0, "quantity") -> "items[0].quantity"
    parts = list(loc[1:]) if len(loc) > 1 and loc[0] in ("body", "query", "path") else list(loc)
    path = ""
    for part in parts:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path or (str(loc[0]) if loc else "body")


# Rejected request bodies and query params answer like service-side validation
@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    problems = [
        {"field": _field_path(error.get("loc", ("body",))), "message": error.get("msg", "Invalid value")}
        for error in exc.errors()
    ]
    first = problems[0] if problems else {"field": None, "message": "Invalid request"}
    error = ValidationFailed(first["message"], field=first["field"], errors=problems)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# Router registration
app.include_router(auth_router)
app.include_router(products_router)
app.include_router(inventory_router)
app.include_router(bills_router)

@app.get("/")
def read_root():
    return {"message": "Stock Billing API is running"}
