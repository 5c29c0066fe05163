import os
from dotenv import load_dotenv

load_dotenv()

# AWS credentials, region and an optional local endpoint (DynamoDB Local / LocalStack)
AWS_ACCESS_KEY = os.getenv("AWS_ACCESS_KEY_ID")
AWS_SECRET_KEY = os.getenv("AWS_SECRET_ACCESS_KEY")
AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
AWS_ENDPOINT_URL = os.getenv("AWS_ENDPOINT_URL") or None
S3_BUCKET = os.getenv("S3_BUCKET", "bookcircle-uploads")

# Table names
USERS_TABLE = os.getenv("USERS_TABLE", "Users")
BOOKS_TABLE = os.getenv("BOOKS_TABLE", "Books")
MESSAGES_TABLE = os.getenv("MESSAGES_TABLE", "Messages")
CART_TABLE = os.getenv("CART_TABLE", "Cart")

# Sessions
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "bookcircle_secret")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "bookcircle_session")
SESSION_MAX_AGE = int(os.getenv("SESSION_MAX_AGE", str(60 * 60 * 24)))
SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

# Application
CREATE_TABLES_ON_STARTUP = os.getenv("CREATE_TABLES_ON_STARTUP", "true").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ALLOWED_EXT = {"jpg", "jpeg", "png"}
ALLOWED_CT = {"image/jpeg", "image/png"}
PORT = os.getenv("PORT", "3000")
