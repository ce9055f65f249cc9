import os
import sys
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from pymongo.database import Database
from starlette.exceptions import HTTPException as StarletteHTTPException

import businesses
import categories
import moderation
import reviews
import users
from config import settings
from database import db, ensure_indexes, get_db
from errors import DirectoryError, ValidationFailed
from images import ImageHost, get_image_host
from logos import CATEGORY_IMAGE_FOLDER, CATEGORY_IMAGE_SIZE, parse_data_url, store_image
from payloads import FeaturedUpdate, StatusUpdate, read_patch, read_submission
from queries import BusinessQuery, featured_businesses, list_businesses, public_businesses
from schemas import BulkStatusRequest, CategoryAction, CategoryCreate, LoginRequest, ReviewUpdate, UserCreate, UserUpdate
from security import Identity, get_identity, login, logout, require_admin, token_from_request

logger.remove()
logger.add(
    sys.stdout,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
    level=settings.log_level,
)

app = FastAPI(title="Business Directory Admin API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -----------------------------
# Error envelope
# -----------------------------

def error_response(status_code: int, message: str, details=None) -> JSONResponse:
    body = {"ok": False, "error": message}
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(DirectoryError)
async def directory_error_handler(request: Request, exc: DirectoryError):
    details = exc.details if isinstance(exc, ValidationFailed) else None
    return error_response(exc.status_code, exc.message, details)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(p) for p in err["loc"] if p != "body"), "message": err["msg"]}
        for err in exc.errors()
    ]
    return error_response(400, "Validation failed", details)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
    message = "Internal server error" if settings.is_production else str(exc) or "Internal server error"
    return error_response(500, message)


@app.on_event("startup")
def init_store():
    if db is None:
        logger.warning("DATABASE_URL not set; store endpoints will fail")
        return
    ensure_indexes(db)


# -----------------------------
# Routes
# -----------------------------
@app.get("/")
def root():
    return {"name": "Business Directory Admin API", "status": "ok"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if settings.database_url else "❌ Not Set",
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": [],
        "image_host": "✅ Configured" if get_image_host().configured else "⚠️ Inline fallback",
    }
    if db is not None:
        response["database_name"] = db.name
        try:
            response["collections"] = db.list_collection_names()
            response["database"] = "✅ Connected & Working"
            response["connection_status"] = "Connected"
        except Exception as e:
            response["database"] = f"⚠️ Connected but Error: {str(e)[:50]}"
    return response


# Auth
@app.post("/api/auth/login")
def login_route(payload: LoginRequest, db: Database = Depends(get_db)):
    return {"ok": True, **login(db, payload.email, payload.password)}


@app.post("/api/auth/logout")
def logout_route(request: Request, db: Database = Depends(get_db)):
    token = token_from_request(request)
    if token:
        logout(db, token)
    return {"ok": True}


# Businesses
@app.get("/api/businesses")
def get_businesses(
    request: Request,
    id: Optional[str] = None,
    slug: Optional[str] = None,
    db: Database = Depends(get_db),
):
    if slug or id:
        return {"ok": True, "business": businesses.find_business(db, business_id=id, slug=slug)}
    params = BusinessQuery(**{
        **request.query_params,
        "history": request.query_params.get("history") == "true",
    })
    return {"ok": True, **list_businesses(db, params)}


@app.post("/api/businesses", status_code=201)
async def create_business(
    request: Request,
    db: Database = Depends(get_db),
    host: ImageHost = Depends(get_image_host),
    identity: Optional[Identity] = Depends(get_identity),
):
    submission = await read_submission(request)
    business = await run_in_threadpool(businesses.create_business, db, host, submission, identity)
    return {"ok": True, "id": business["id"], "business": business}


@app.get("/api/businesses/stats")
def business_stats(db: Database = Depends(get_db), admin: Identity = Depends(require_admin)):
    return {"ok": True, **moderation.moderation_stats(db)}


@app.get("/api/analytics")
def analytics(db: Database = Depends(get_db), admin: Identity = Depends(require_admin)):
    return {"ok": True, **moderation.dashboard(db)}


@app.patch("/api/businesses/bulk")
def bulk_update(payload: BulkStatusRequest, db: Database = Depends(get_db),
                admin: Identity = Depends(require_admin)):
    result = moderation.bulk_change_status(db, payload.businessIds, payload.status, admin, payload.rejectionReason)
    return {"ok": True, **result}


@app.patch("/api/businesses/{business_id}")
async def patch_business(
    business_id: str,
    request: Request,
    db: Database = Depends(get_db),
    host: ImageHost = Depends(get_image_host),
    admin: Identity = Depends(require_admin),
):
    update = await read_patch(request)
    if isinstance(update, StatusUpdate):
        business = await run_in_threadpool(moderation.change_status, db, business_id, update, admin)
    elif isinstance(update, FeaturedUpdate):
        business = await run_in_threadpool(moderation.set_featured, db, business_id, update)
    else:
        business = await run_in_threadpool(businesses.update_fields, db, host, business_id, update)
    return {"ok": True, "business": business}


@app.delete("/api/businesses/{business_id}")
def delete_business(business_id: str, db: Database = Depends(get_db), admin: Identity = Depends(require_admin)):
    moderation.delete_business(db, business_id)
    return {"ok": True}


@app.get("/api/featured-businesses")
def get_featured(db: Database = Depends(get_db)):
    items = featured_businesses(db)
    return {"ok": True, "featuredBusinesses": items, "count": len(items)}


@app.get("/api/public/businesses")
def get_public_businesses(page: str = "1", limit: str = "10", search: str = "", city: str = "",
                          category: str = "", db: Database = Depends(get_db)):
    return {"ok": True, **public_businesses(db, page, limit, search, city, category)}


# Categories
@app.get("/api/categories")
def get_categories(q: str = "", slug: str = "", db: Database = Depends(get_db)):
    if slug.strip():
        return {"ok": True, "category": categories.get_category(db, slug.strip())}
    return {"ok": True, "categories": categories.list_categories(db, q.strip())}


def _category_image(host: ImageHost, data_url: str):
    if not data_url:
        raise ValidationFailed.for_field("imageDataUrl", "imageDataUrl is required")
    image = parse_data_url(data_url, settings.category_image_max_chars, field="imageDataUrl")
    return store_image(host, image, CATEGORY_IMAGE_FOLDER, CATEGORY_IMAGE_SIZE)


@app.post("/api/categories", status_code=201)
def create_category(payload: CategoryCreate, db: Database = Depends(get_db),
                    host: ImageHost = Depends(get_image_host), admin: Identity = Depends(require_admin)):
    if not payload.category.strip():
        raise ValidationFailed.for_field("category", "Category is required")
    url, public_id = _category_image(host, payload.imageDataUrl)
    category = categories.create_category(db, payload.category, url, public_id, payload.subCategory)
    return {"ok": True, "category": category}


@app.patch("/api/categories")
def update_category(payload: CategoryAction, db: Database = Depends(get_db),
                    host: ImageHost = Depends(get_image_host), admin: Identity = Depends(require_admin)):
    slug = payload.slug.strip()
    if not slug:
        raise ValidationFailed.for_field("slug", "slug is required")

    if payload.action == "updateCategoryName":
        category = categories.rename_category(db, slug, payload.newName)
    elif payload.action == "updateCategoryImage":
        url, public_id = _category_image(host, payload.imageDataUrl)
        category = categories.set_category_image(db, slug, url, public_id)
    elif payload.action == "addSubcategory":
        category = categories.add_subcategory(db, slug, payload.subName)
    elif payload.action == "renameSubcategory":
        category = categories.rename_subcategory(db, slug, payload.subSlug.strip(), payload.newName)
    else:
        raise HTTPException(400, "Unknown action")
    return {"ok": True, "category": category}


@app.delete("/api/categories")
def delete_category(slug: str = "", subSlug: str = "", db: Database = Depends(get_db),
                    admin: Identity = Depends(require_admin)):
    slug, sub_slug = slug.strip(), subSlug.strip()
    if not slug:
        raise ValidationFailed.for_field("slug", "slug is required")
    if sub_slug:
        return {"ok": True, "category": categories.delete_subcategory(db, slug, sub_slug)}
    categories.delete_category(db, slug)
    return {"ok": True}


# Reviews
@app.get("/api/reviews")
def get_reviews(businessId: str = "", page: int = 1, limit: int = 10, db: Database = Depends(get_db),
                admin: Identity = Depends(require_admin)):
    return {"ok": True, "data": reviews.list_reviews(db, businessId.strip(), page, limit)}


@app.patch("/api/reviews/{review_id}")
def patch_review(review_id: str, payload: ReviewUpdate, db: Database = Depends(get_db),
                 admin: Identity = Depends(require_admin)):
    return {"ok": True, "review": reviews.update_review(db, review_id, payload)}


@app.delete("/api/reviews/{review_id}")
def delete_review(review_id: str, db: Database = Depends(get_db), admin: Identity = Depends(require_admin)):
    reviews.delete_review(db, review_id)
    return {"ok": True}


# Users
@app.get("/api/users")
def get_users(db: Database = Depends(get_db), admin: Identity = Depends(require_admin)):
    return {"ok": True, "users": users.list_users(db)}


@app.post("/api/users", status_code=201)
def create_user(payload: UserCreate, db: Database = Depends(get_db), admin: Identity = Depends(require_admin)):
    return {"ok": True, "userId": users.create_user(db, payload, admin)}


@app.patch("/api/users/{user_id}")
def update_user(user_id: str, payload: UserUpdate, db: Database = Depends(get_db),
                admin: Identity = Depends(require_admin)):
    users.update_user(db, user_id, payload)
    return {"ok": True}


@app.delete("/api/users/{user_id}")
def delete_user(user_id: str, db: Database = Depends(get_db), admin: Identity = Depends(require_admin)):
    users.delete_user(db, user_id)
    return {"ok": True}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
