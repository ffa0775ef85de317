# main.py
from fastapi import FastAPI, Depends, HTTPException, Request, status, UploadFile, File, Query
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.concurrency import run_in_threadpool
from typing import List, Optional
from decimal import Decimal
from sqlalchemy.orm import Session, joinedload
import logging

from config import CORS_ORIGINS, LOG_LEVEL, MAX_IMAGE_BYTES
from database import engine, get_db
from errors import ImageUploadError
from auth import (
    authenticate_user,
    get_current_user,
    get_password_hash,
    get_token_data,
    issue_token_response,
    revoke_token,
)
from permissions import authorize_mutation, find_or_404, require_listing_owner
from image_upload import upload_to_imgbb
import models
import schemas

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create database tables
models.Base.metadata.create_all(bind=engine)

# Create FastAPI instance
app = FastAPI(title="Marketplace Listings API")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials="*" not in CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error rendering: every failure is {"message": ...}
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        field = ".".join(loc[1:]) or (loc[0] if loc else "body")
        errors.setdefault(field, []).append(error.get("msg", "Invalid value"))
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"message": "The given data was invalid.", "errors": errors},
    )

@app.exception_handler(ImageUploadError)
async def image_upload_exception_handler(request: Request, exc: ImageUploadError):
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": str(exc) or "Image upload failed"},
    )

def field_error(field: str, message: str):
    return RequestValidationError([
        {"loc": ("body", field), "msg": message, "type": "value_error"}
    ])

def listings_query(db: Session):
    return db.query(models.Listing).options(joinedload(models.Listing.user))

def newest_first(query, model):
    return query.order_by(model.created_at.desc(), model.id.desc())


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}

# Auth endpoints
@app.post("/auth/register", response_model=schemas.UserEnvelope, status_code=status.HTTP_201_CREATED)
async def register(user: schemas.UserCreate, db: Session = Depends(get_db)):
    email = user.email.lower()
    db_user = db.query(models.User).filter(models.User.email == email).first()
    if db_user:
        raise field_error("email", "The email has already been taken.")

    db_user = models.User(
        name=user.name,
        email=email,
        password=get_password_hash(user.password)
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    logger.info("Registered user %s", db_user.id)
    return {"message": "User successfully registered", "user": db_user}

@app.post("/auth/login", response_model=schemas.TokenResponse)
async def login(credentials: schemas.UserLogin, db: Session = Depends(get_db)):
    user = authenticate_user(db, credentials.email, credentials.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    logger.info("User %s logged in", user.id)
    return issue_token_response(user)

@app.post("/auth/logout", response_model=schemas.MessageResponse)
async def logout(
    token_data: schemas.TokenData = Depends(get_token_data),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    revoke_token(db, token_data)
    db.commit()
    return {"message": "Successfully logged out"}

@app.post("/auth/refresh", response_model=schemas.TokenResponse)
async def refresh(
    token_data: schemas.TokenData = Depends(get_token_data),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    revoke_token(db, token_data)
    db.commit()
    return issue_token_response(current_user)

@app.post("/auth/me", response_model=schemas.UserResponse)
async def me(current_user: models.User = Depends(get_current_user)):
    return current_user

# User endpoints
@app.get("/users/{user_id}", response_model=schemas.UserResponse)
async def get_user(user_id: int, db: Session = Depends(get_db)):
    return find_or_404(db, "user", user_id)

@app.get("/users/{user_id}/listings", response_model=List[schemas.ListingResponse])
async def get_user_listings(user_id: int, db: Session = Depends(get_db)):
    query = listings_query(db).filter(models.Listing.user_id == user_id)
    return newest_first(query, models.Listing).all()

# Listing endpoints
@app.get("/listings", response_model=List[schemas.ListingResponse])
async def get_listings(db: Session = Depends(get_db)):
    return newest_first(listings_query(db), models.Listing).all()

@app.post("/listings", response_model=schemas.ListingEnvelope, status_code=status.HTTP_201_CREATED)
async def create_listing(
    listing: schemas.ListingCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    data = listing.model_dump()
    data["images"] = data["images"] or []
    # Owner always comes from the token
    db_listing = models.Listing(**data, user_id=current_user.id)
    db.add(db_listing)
    db.commit()
    db.refresh(db_listing)
    logger.info("User %s created listing %s", current_user.id, db_listing.id)
    return {"message": "Listing created successfully", "listing": db_listing}

@app.get("/listings/category/{category}", response_model=List[schemas.ListingResponse])
async def get_listings_by_category(
    category: str,
    exclude: Optional[int] = None,
    limit: Optional[int] = Query(None, ge=0),
    db: Session = Depends(get_db)
):
    query = listings_query(db).filter(models.Listing.category == category)
    if exclude is not None:
        query = query.filter(models.Listing.id != exclude)
    query = newest_first(query, models.Listing)
    if limit is not None:
        query = query.limit(limit)
    return query.all()

@app.get("/listings/price-range", response_model=List[schemas.ListingResponse])
async def get_listings_by_price_range(
    min_price: Decimal = Query(Decimal("0"), alias="min"),
    max_price: Optional[Decimal] = Query(None, alias="max", description="Omit for no upper bound"),
    db: Session = Depends(get_db)
):
    query = listings_query(db).filter(models.Listing.price >= min_price)
    if max_price is not None:
        query = query.filter(models.Listing.price <= max_price)
    return newest_first(query, models.Listing).all()

@app.get("/listings/{listing_id}", response_model=schemas.ListingResponse)
async def get_listing(listing_id: int, db: Session = Depends(get_db)):
    return find_or_404(db, "listing", listing_id)

@app.put("/listings/{listing_id}", response_model=schemas.ListingEnvelope)
async def update_listing(
    changes: schemas.ListingUpdate,
    listing: models.Listing = Depends(require_listing_owner),
    db: Session = Depends(get_db)
):
    data = changes.model_dump(exclude_unset=True)
    if "images" in data and data["images"] is None:
        data["images"] = []
    for field, value in data.items():
        setattr(listing, field, value)
    db.commit()
    db.refresh(listing)
    return {"message": "Listing updated successfully", "listing": listing}

@app.delete("/listings/{listing_id}", response_model=schemas.MessageResponse)
async def delete_listing(
    listing: models.Listing = Depends(require_listing_owner),
    db: Session = Depends(get_db)
):
    listing_id = listing.id
    # Comments go with it through the relationship cascade
    db.delete(listing)
    db.commit()
    logger.info("Deleted listing %s", listing_id)
    return {"message": "Listing deleted successfully"}

# Comment endpoints
@app.get("/listings/{listing_id}/comments", response_model=List[schemas.CommentResponse])
async def get_listing_comments(listing_id: int, db: Session = Depends(get_db)):
    find_or_404(db, "listing", listing_id)
    query = db.query(models.Comment).options(joinedload(models.Comment.user)).filter(
        models.Comment.listing_id == listing_id
    )
    return newest_first(query, models.Comment).all()

@app.post("/listings/{listing_id}/comments", response_model=schemas.CommentEnvelope, status_code=status.HTTP_201_CREATED)
async def create_comment(
    listing_id: int,
    comment: schemas.CommentCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    find_or_404(db, "listing", listing_id)

    db_comment = models.Comment(
        listing_id=listing_id,
        user_id=current_user.id,
        body=comment.body
    )
    db.add(db_comment)
    db.commit()
    db.refresh(db_comment)
    logger.info("User %s commented on listing %s", current_user.id, listing_id)
    return {"message": "Comment added successfully", "comment": db_comment}

@app.delete("/comments/{comment_id}", response_model=schemas.MessageResponse)
async def delete_comment(
    comment_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    # Only the author; the listing owner gets no special rights here
    comment = authorize_mutation(db, current_user, "comment", comment_id)
    db.delete(comment)
    db.commit()
    logger.info("Deleted comment %s", comment_id)
    return {"message": "Comment deleted successfully"}

# Image upload
@app.post("/upload-image", response_model=schemas.ImageUploadResponse)
async def upload_image(image: UploadFile = File(...)):
    if not (image.content_type or "").startswith("image/"):
        raise field_error("image", "The image must be an image.")
    data = await image.read()
    if len(data) > MAX_IMAGE_BYTES:
        raise field_error("image", f"The image may not be greater than {MAX_IMAGE_BYTES // 1024} kilobytes.")
    # requests is blocking; keep it off the event loop
    url = await run_in_threadpool(upload_to_imgbb, data)
    return {"url": url}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
