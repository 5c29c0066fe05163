"""Rule based assistant: FAQs, page navigation and simple catalogue lookups.

Rules are tried in order and the first one that matches answers.
"""
import re
from decimal import Decimal
from typing import Callable, Dict, List, Optional

PRICE_PATTERN = re.compile(r"under\s*₹?(\d+)")
LOCATION_PATTERN = re.compile(r"books?.*in\s+([a-zA-Z0-9\s]+)", re.IGNORECASE)

POST_BOOK_HELP = (
    "To post a book: Go to your Profile page, fill in the book details (title, author, price, "
    "location, description), upload an image if available, and click 'Post Book'."
)
SEARCH_HELP = "To search for books under a price: Use the search bar on the Home page and select a price filter."
NAVIGATION_HELP = "I can help you navigate to Profile, Home, Messages, or Cart. What page would you like to go to?"
NOT_FOUND = (
    "I'm sorry, I couldn't find books matching your query. Try searching on the Home page "
    "or ask about posting books, searching, or navigation."
)
GREETING = (
    "Hi! I'm the Book Circle AI Assistant. I can help with FAQs like posting books, "
    "searching, or navigating the site. What can I assist you with?"
)

# (keyword, page, reply), checked in this order
DESTINATIONS = [
    ("profile", "profile.html", "Redirecting to your Profile page..."),
    ("cart", "profile.html#cart", "Redirecting to your Cart..."),
    ("home", "home.html", "Redirecting to Home page..."),
    ("message", "messages.html", "Redirecting to Messages page..."),
]

BookLoader = Callable[[], List[dict]]


def text(message: str) -> Dict[str, str]:
    return {"type": "text", "message": message}


def navigation(page: str, message: str) -> Dict[str, str]:
    return {"type": "navigation", "page": page, "message": message}


def _price(book: dict) -> str:
    price = book.get("price")
    if price is None:
        return "N/A"
    # 100.50 reads as 100.5, 2.5E+2 as 250
    return format(Decimal(price).normalize(), "f")


def describe(book: dict, with_location: bool = True) -> str:
    line = f"{book.get('title')} by {book.get('author')} - ₹{_price(book)}"
    if with_location:
        line += f" ({book.get('location')})"
    return line


def books_under(books: List[dict], max_price: int, limit: int = 5) -> List[dict]:
    matches = [b for b in books if b.get("price") is not None and Decimal(b["price"]) <= max_price]
    return matches[:limit]


def books_in(books: List[dict], location: str, limit: int = 5) -> List[dict]:
    pattern = re.compile(re.escape(location), re.IGNORECASE)
    matches = [b for b in books if pattern.search(b.get("location") or "")]
    return matches[:limit]


def books_matching(books: List[dict], keywords: List[str], limit: int = 3) -> List[dict]:
    pattern = re.compile("|".join(re.escape(k) for k in keywords), re.IGNORECASE)
    matches = [
        b for b in books
        if pattern.search(b.get("title") or "") or pattern.search(b.get("author") or "")
    ]
    return matches[:limit]


def _navigate(msg: str) -> Dict[str, str]:
    for keyword, page, reply in DESTINATIONS:
        if keyword in msg:
            return navigation(page, reply)
    return text(NAVIGATION_HELP)


def _location(msg: str) -> Optional[str]:
    match = LOCATION_PATTERN.search(msg)
    if not match:
        return None
    return match.group(1).strip() or None


def reply(message: str, load_books: BookLoader) -> Dict[str, str]:
    """
    Answer one chat message.

    ``load_books`` returns the catalogue newest first. It is only called by
    the rules that look books up.
    """
    msg = message.lower().strip()

    if "post" in msg and "book" in msg:
        return text(POST_BOOK_HELP)

    if "search" in msg and "under" in msg:
        match = PRICE_PATTERN.search(msg)
        if not match:
            return text(SEARCH_HELP)
        max_price = int(match.group(1))
        found = [describe(b) for b in books_under(load_books(), max_price)]
        listing = "; ".join(found) if found else "No books found."
        return text(f"Books under ₹{max_price}: {listing}")

    if "go to" in msg or "show" in msg:
        return _navigate(msg)

    location = _location(msg)
    if location:
        found = books_in(load_books(), location)
        if not found:
            return text(f"Sorry, no books found in {location}.")
        return text(f"Books available in {location}: {'; '.join(describe(b) for b in found)}")

    keywords = [word for word in msg.split() if len(word) > 2]
    if not keywords:
        return text(GREETING)

    found = books_matching(load_books(), keywords)
    if not found:
        return text(NOT_FOUND)
    suggestions = "; ".join(describe(b, with_location=False) for b in found)
    return text(f'Based on your interest in "{", ".join(keywords)}", here are some book suggestions: {suggestions}')
