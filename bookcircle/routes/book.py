import uuid
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional, List
from datetime import datetime, timezone
from boto3.dynamodb.conditions import Key
from fastapi import APIRouter, HTTPException, Depends, UploadFile, File, Form

from bookcircle import settings
from bookcircle.database import books_table, get_s3_client, fetch_all, fits_partition_key
from bookcircle.routes.auth import get_current_user
from bookcircle.routes.user import get_user

router = APIRouter()
logger = logging.getLogger(__name__)

BOOK_FIELDS = ("title", "author", "location", "description")


def _image_url(s3_key: str) -> str:
    return f"https://{settings.S3_BUCKET}.s3.{settings.AWS_REGION}.amazonaws.com/{s3_key}"

# Upload a cover image to S3 and return its public url
def upload_image(file: UploadFile, user_id: str) -> str:
    filename = file.filename or ""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    ctype = (file.content_type or "").lower()
    if ext not in settings.ALLOWED_EXT or ctype not in settings.ALLOWED_CT:
        raise HTTPException(status_code=400, detail="Only JPG/PNG images are allowed.")

    if ext == "jpeg":
        ext = "jpg"

    s3_key = f"books/{user_id}/{uuid.uuid4()}.{ext}"
    get_s3_client().upload_fileobj(
        file.file,
        settings.S3_BUCKET,
        s3_key,
        ExtraArgs={"ContentType": ctype}
    )

    return _image_url(s3_key)

# Remove an image, a failure here never fails the request
def delete_image(url: Optional[str]):
    if not url:
        return
    try:
        key = url.split(".amazonaws.com/")[-1]
        get_s3_client().delete_object(Bucket=settings.S3_BUCKET, Key=key)
    except Exception as e:
        logger.warning("Failed to delete %s from S3: %s", url, e)

def parse_price(price: Optional[str]) -> Optional[Decimal]:
    if price is None or price.strip() == "":
        return None
    try:
        value = Decimal(price.strip())
    except InvalidOperation:
        raise HTTPException(status_code=400, detail="Price must be a number")
    if not value.is_finite() or value < 0:
        raise HTTPException(status_code=400, detail="Price must be a non-negative number")
    return value

def parse_rating(rating: Optional[str]) -> Optional[int]:
    if rating is None or rating.strip() == "":
        return None
    try:
        value = int(rating)
    except ValueError:
        raise HTTPException(status_code=400, detail="Rating must be a whole number")
    if not 1 <= value <= 5:
        raise HTTPException(status_code=400, detail="Rating must be between 1 and 5")
    return value

def _has_file(file: Optional[UploadFile]) -> bool:
    return file is not None and bool(file.filename)

# Shape a stored book for the client, with the owner's name attached
def format_book(book: dict, owners: Optional[dict] = None) -> dict:
    owner_id = book.get("user_id")
    if owners is not None and owner_id in owners:
        owner = owners[owner_id]
    else:
        owner = get_user(owner_id) if owner_id else None

    return {
        "_id": book["book_id"],
        "book_id": book["book_id"],
        "title": book.get("title"),
        "author": book.get("author"),
        "price": book.get("price"),
        "location": book.get("location"),
        "description": book.get("description"),
        "image": book.get("image"),
        "rating": book.get("rating"),
        "user": {"id": owner["user_id"], "username": owner["username"]} if owner else None,
        "createdAt": book.get("created_at"),
        "updatedAt": book.get("updated_at"),
    }

def format_books(books: List[dict]) -> List[dict]:
    owners = {}
    for owner_id in {b.get("user_id") for b in books if b.get("user_id")}:
        owners[owner_id] = get_user(owner_id)
    return [format_book(b, owners) for b in books]

def newest_books(books: List[dict]) -> List[dict]:
    return sorted(books, key=lambda b: b.get("created_at", ""), reverse=True)

def all_books() -> List[dict]:
    return newest_books(fetch_all(books_table().scan))

def get_book(book_id: str) -> Optional[dict]:
    if not fits_partition_key(book_id):
        return None
    return books_table().get_item(Key={"book_id": book_id}).get("Item")

def get_owned_book(book_id: str, user_id: str) -> dict:
    book = get_book(book_id)
    if not book:
        raise HTTPException(status_code=404, detail="Book not found")

    if book["user_id"] != user_id:
        raise HTTPException(status_code=403, detail="Forbidden")

    return book

# Create a new listing
@router.post("")
def create_book(
    title: Optional[str] = Form(None),
    author: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    rating: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    user_data: dict = Depends(get_current_user)
):
    user_id = user_data["user_id"]
    parsed_price = parse_price(price)
    parsed_rating = parse_rating(rating)
    image_url = upload_image(image, user_id) if _has_file(image) else None

    now = datetime.now(timezone.utc).isoformat()
    book = {
        "book_id": str(uuid.uuid4()),
        "user_id": user_id,
        "title": title,
        "author": author,
        "price": parsed_price,
        "location": location,
        "description": description,
        "image": image_url,
        "rating": parsed_rating,
        "created_at": now,
        "updated_at": now,
    }
    # DynamoDB has no use for empty attributes
    books_table().put_item(Item={k: v for k, v in book.items() if v is not None})
    logger.info("Book %s listed by %s", book["book_id"], user_id)

    return {"success": True, "book": format_book(book)}

# Get all books, newest first
@router.get("")
def list_books():
    return format_books(all_books())

# Get my books
@router.get("/mine")
def list_my_books(user_data: dict = Depends(get_current_user)):
    books = fetch_all(
        books_table().query,
        IndexName="user_id-created_at-index",
        KeyConditionExpression=Key("user_id").eq(user_data["user_id"]),
        ScanIndexForward=False,  # newest -> oldest
    )
    return format_books(books)

# Edit a book, owner only. Omitted fields stay as they are
@router.put("/{book_id}")
def edit_book(
    book_id: str,
    title: Optional[str] = Form(None),
    author: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    rating: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    user_data: dict = Depends(get_current_user)
):
    book = get_owned_book(book_id, user_data["user_id"])

    updates = {}
    for field, value in zip(BOOK_FIELDS, (title, author, location, description)):
        if value is not None:
            updates[field] = value
    if price is not None:
        updates["price"] = parse_price(price)
    if rating is not None:
        updates["rating"] = parse_rating(rating)
    if _has_file(image):
        updates["image"] = upload_image(image, user_data["user_id"])
    updates["updated_at"] = datetime.now(timezone.utc).isoformat()

    to_set = {k: v for k, v in updates.items() if v is not None}
    to_remove = [k for k, v in updates.items() if v is None]
    expression = "SET " + ", ".join(f"#{k} = :{k}" for k in to_set)
    if to_remove:
        expression += " REMOVE " + ", ".join(f"#{k}" for k in to_remove)

    try:
        result = books_table().update_item(
            Key={"book_id": book_id},
            UpdateExpression=expression,
            ExpressionAttributeNames={f"#{k}": k for k in updates},
            ExpressionAttributeValues={f":{k}": v for k, v in to_set.items()},
            ReturnValues="ALL_NEW"
        )
    except Exception:
        # the listing still points at the old image, drop the unused upload
        delete_image(updates.get("image"))
        raise

    # old image goes only once the listing no longer refers to it
    if updates.get("image"):
        delete_image(book.get("image"))

    return {"success": True, "book": format_book(result["Attributes"])}

# Delete a book, owner only
@router.delete("/{book_id}")
def delete_book(book_id: str, user_data: dict = Depends(get_current_user)):
    book = get_owned_book(book_id, user_data["user_id"])

    delete_image(book.get("image"))
    books_table().delete_item(Key={"book_id": book_id})
    logger.info("Book %s deleted by %s", book_id, user_data["user_id"])

    return {"success": True}
