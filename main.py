import os
import re
import math
import logging
import secrets
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from bson.objectid import ObjectId
from fastapi import FastAPI, HTTPException, Depends, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from passlib.hash import bcrypt
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from database import db, create_document, ensure_indexes, to_str_id
from schemas import (
    AdminLogin,
    ContactMessage,
    ContactMessageIn,
    OrderCreate,
    Product,
    ProductUpdate,
    ReadUpdate,
    Settings,
    Session,
    SettingsUpdate,
    StatusUpdate,
)
from seed_data import SEED_PRODUCTS, ADMIN_PASSWORD, default_settings
import orders

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

ADMIN_PAGE_SIZE = 10
STRICT_STATUS_TRANSITIONS = os.getenv("STRICT_STATUS_TRANSITIONS", "false").lower() in ("1", "true", "yes")
NO_DB_PATHS = ("/", "/test", "/docs", "/redoc", "/openapi.json")


def seed_database():
    if db["settings"].count_documents({}) == 0:
        logger.info("No settings found, seeding defaults")
        create_document("settings", default_settings(bcrypt.hash(ADMIN_PASSWORD)))
    if db["product"].count_documents({}) == 0:
        logger.info("No products found, seeding catalog")
        for product in SEED_PRODUCTS:
            create_document("product", product)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if db is not None:
        ensure_indexes(db)
        seed_database()
    else:
        logger.warning("DATABASE_URL/DATABASE_NAME not set; API will answer 500")
    yield


app = FastAPI(title="SAZO Storefront API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def require_database(request: Request, call_next):
    if db is None and request.url.path not in NO_DB_PATHS:
        return JSONResponse(status_code=500, content={"detail": "Database not configured"})
    return await call_next(request)


@app.exception_handler(orders.OrderError)
async def order_error_handler(request: Request, exc: orders.OrderError):
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


@app.exception_handler(PyMongoError)
async def store_error_handler(request: Request, exc: PyMongoError):
    logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "Service Unavailable: Could not connect to the database.", "error": exc.__class__.__name__},
    )


# Utilities
def parse_object_id(id_str: str, not_found: str) -> ObjectId:
    if not ObjectId.is_valid(id_str):
        raise HTTPException(status_code=404, detail=not_found)
    return ObjectId(id_str)


def load_settings() -> dict:
    s = db["settings"].find_one()
    if not s:
        create_document("settings", default_settings(bcrypt.hash(ADMIN_PASSWORD)))
        s = db["settings"].find_one()
    return s


def public_settings(doc: dict) -> dict:
    s = dict(doc)
    s.pop("_id", None)
    s.pop("admin_password", None)
    return s


def require_admin(authorization: Optional[str] = Header(None)):
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing admin token")
    token = authorization
    if token.lower().startswith("bearer "):
        token = token[7:].strip()
    session = db["session"].find_one({"token": token})
    if not session:
        raise HTTPException(status_code=401, detail="Invalid token")
    return session["email"]


# Auth
@app.post("/auth/login")
def admin_login(payload: AdminLogin):
    s = load_settings()
    stored_hash = s.get("admin_password") or ""
    if payload.email.lower() != s.get("admin_email", "").lower() or not stored_hash:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not bcrypt.verify(payload.password, stored_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    token = secrets.token_urlsafe(24)
    create_document("session", Session(token=token, email=s["admin_email"]))
    return {"success": True, "token": token}


# Home page bundle
@app.get("/page-data/home")
def home_page_data():
    s = load_settings()
    products = db["product"].find({"$or": [{"is_new_arrival": True}, {"is_trending": True}]}).sort(
        [("display_order", 1), ("created_at", -1)]
    )
    return {"settings": public_settings(s), "products": [to_str_id(p) for p in products]}


# Products
@app.get("/products")
def list_products():
    return [to_str_id(p) for p in db["product"].find().sort("created_at", -1)]


@app.get("/products/admin")
def admin_products(page: int = 1, search: Optional[str] = None, admin: str = Depends(require_admin)):
    page = max(page, 1)
    query = {}
    if search:
        query["name"] = {"$regex": re.escape(search), "$options": "i"}
    count = db["product"].count_documents(query)
    cursor = db["product"].find(query).sort("created_at", -1).skip(ADMIN_PAGE_SIZE * (page - 1)).limit(ADMIN_PAGE_SIZE)
    return {
        "products": [to_str_id(p) for p in cursor],
        "page": page,
        "pages": math.ceil(count / ADMIN_PAGE_SIZE),
        "total": count,
    }


@app.get("/products/{product_id}")
def get_product(product_id: str):
    prod = db["product"].find_one({"_id": parse_object_id(product_id, "Product not found")})
    if not prod:
        raise HTTPException(status_code=404, detail="Product not found")
    return to_str_id(prod)


@app.post("/products", status_code=201)
def create_product(data: Product, admin: str = Depends(require_admin)):
    pid = create_document("product", data)
    return to_str_id(db["product"].find_one({"_id": ObjectId(pid)}))


@app.put("/products/{product_id}")
def update_product(product_id: str, data: ProductUpdate, admin: str = Depends(require_admin)):
    changes = data.model_dump(exclude_none=True)
    changes["updated_at"] = datetime.now(timezone.utc)
    prod = db["product"].find_one_and_update(
        {"_id": parse_object_id(product_id, "Product not found")},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if not prod:
        raise HTTPException(status_code=404, detail="Product not found")
    return to_str_id(prod)


@app.delete("/products/{product_id}")
def delete_product(product_id: str, admin: str = Depends(require_admin)):
    result = db["product"].delete_one({"_id": parse_object_id(product_id, "Product not found")})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Product not found")
    return {"success": True, "message": "Product removed"}


# Orders
@app.get("/orders")
def all_orders(admin: str = Depends(require_admin)):
    return orders.list_orders(db)


@app.get("/orders/{order_id}")
def get_order(order_id: str):
    return orders.find_order(db, order_id)


@app.post("/orders", status_code=201)
def place_order(payload: OrderCreate):
    settings = Settings.model_validate(load_settings())
    try:
        return orders.create_order(db, payload, settings)
    except orders.OrderError as e:
        logger.info("Order rejected: %s", e)
        raise


@app.put("/orders/{order_id}/status")
def update_order_status(order_id: str, payload: StatusUpdate, admin: str = Depends(require_admin)):
    return orders.update_order_status(db, order_id, payload.status, strict=STRICT_STATUS_TRANSITIONS)


@app.delete("/orders/{order_id}")
def delete_order(order_id: str, admin: str = Depends(require_admin)):
    orders.delete_order(db, order_id)
    return {"success": True, "message": "Order removed"}


# Settings
@app.get("/settings")
def get_settings():
    return public_settings(load_settings())


@app.put("/settings")
def set_settings(payload: SettingsUpdate, admin: str = Depends(require_admin)):
    s = load_settings()
    data = payload.model_dump(exclude_none=True)
    if data.get("admin_password"):
        data["admin_password"] = bcrypt.hash(data["admin_password"])
    else:
        data.pop("admin_password", None)
    data["updated_at"] = datetime.now(timezone.utc)
    db["settings"].update_one({"_id": s["_id"]}, {"$set": data})
    return public_settings(db["settings"].find_one({"_id": s["_id"]}))


# Contact messages
@app.post("/messages", status_code=201)
def send_message(payload: ContactMessageIn):
    msg = ContactMessage(**payload.model_dump(), date=datetime.now(timezone.utc).date().isoformat())
    mid = create_document("contactmessage", msg)
    return to_str_id(db["contactmessage"].find_one({"_id": ObjectId(mid)}))


@app.get("/messages")
def list_messages(admin: str = Depends(require_admin)):
    return [to_str_id(m) for m in db["contactmessage"].find().sort("created_at", -1)]


@app.put("/messages/{message_id}/read")
def mark_message(message_id: str, payload: ReadUpdate, admin: str = Depends(require_admin)):
    msg = db["contactmessage"].find_one_and_update(
        {"_id": parse_object_id(message_id, "Message not found")},
        {"$set": {"is_read": payload.is_read, "updated_at": datetime.now(timezone.utc)}},
        return_document=ReturnDocument.AFTER,
    )
    if not msg:
        raise HTTPException(status_code=404, detail="Message not found")
    return to_str_id(msg)


@app.delete("/messages/{message_id}")
def delete_message(message_id: str, admin: str = Depends(require_admin)):
    result = db["contactmessage"].delete_one({"_id": parse_object_id(message_id, "Message not found")})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Message not found")
    return {"success": True}


@app.get("/")
def root():
    return {"service": "SAZO Storefront API", "status": "ok"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
    }
    try:
        response["db"] = "✅ Connected" if db is not None else "❌ Not Connected"
        response["collections"] = db.list_collection_names() if db is not None else []
    except Exception as e:
        response["db"] = f"Error: {e}"
    return response


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
