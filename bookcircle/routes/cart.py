from datetime import datetime, timezone
from boto3.dynamodb.conditions import Key
from fastapi import APIRouter, HTTPException, Depends

from bookcircle.database import cart_table, fetch_all, fits_sort_key
from bookcircle.routes.auth import get_current_user
from bookcircle.routes.book import format_book, get_book

router = APIRouter()

# Add a book to my cart
@router.post("/add/{book_id}")
def add_to_cart(book_id: str, user_data: dict = Depends(get_current_user)):
    user_id = user_data["user_id"]
    if not fits_sort_key(book_id):
        raise HTTPException(status_code=404, detail="Book not found")

    existing = cart_table().get_item(Key={"user_id": user_id, "book_id": book_id}).get("Item")
    if existing:
        raise HTTPException(status_code=400, detail="Already in cart")

    if not get_book(book_id):
        raise HTTPException(status_code=404, detail="Book not found")

    item = {
        "user_id": user_id,
        "book_id": book_id,
        "added_at": datetime.now(timezone.utc).isoformat(),
    }
    cart_table().put_item(Item=item)

    return {"success": True, "cart": item}

# Remove a book from my cart
@router.delete("/remove/{book_id}")
def remove_from_cart(book_id: str, user_data: dict = Depends(get_current_user)):
    if not fits_sort_key(book_id):
        raise HTTPException(status_code=404, detail="Item not in cart")

    result = cart_table().delete_item(
        Key={"user_id": user_data["user_id"], "book_id": book_id},
        ReturnValues="ALL_OLD"
    )
    if not result.get("Attributes"):
        raise HTTPException(status_code=404, detail="Item not in cart")

    return {"success": True}

# Get my cart, most recently added first
@router.get("")
def get_cart(user_data: dict = Depends(get_current_user)):
    items = fetch_all(
        cart_table().query,
        KeyConditionExpression=Key("user_id").eq(user_data["user_id"]),
    )
    items.sort(key=lambda i: i.get("added_at", ""), reverse=True)

    cart = []
    for item in items:
        book = get_book(item["book_id"])
        details = format_book(book) if book else {}
        cart.append({
            "_id": f"{item['user_id']}#{item['book_id']}",
            "bookId": item["book_id"] if book else None,
            "title": details.get("title"),
            "author": details.get("author"),
            "price": details.get("price"),
            "location": details.get("location"),
            "description": details.get("description"),
            "image": details.get("image"),
            "rating": details.get("rating"),
            "user": {"username": details["user"]["username"]} if details.get("user") else None,
            "createdAt": details.get("createdAt"),
            "addedAt": item["added_at"],
        })

    return cart
