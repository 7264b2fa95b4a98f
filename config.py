import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

# Security settings
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-me")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 30)))
JWT_COOKIE_EXPIRE_DAYS = int(os.getenv("JWT_COOKIE_EXPIRE_DAYS", "30"))
RESET_TOKEN_EXPIRE_MINUTES = 10

# Uploads
FILE_UPLOAD_PATH = os.getenv("FILE_UPLOAD_PATH", "./public/uploads")
MAX_FILE_UPLOAD = int(os.getenv("MAX_FILE_UPLOAD", "1000000"))

# Geocoder
GEOCODER_URL = os.getenv("GEOCODER_URL", "https://www.mapquestapi.com/geocoding/v1/address")
GEOCODER_API_KEY = os.getenv("GEOCODER_API_KEY", "")

# Mail
SMTP_HOST = os.getenv("SMTP_HOST", "localhost")
SMTP_PORT = int(os.getenv("SMTP_PORT", "2525"))
SMTP_EMAIL = os.getenv("SMTP_EMAIL", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "false").lower() == "true"
FROM_EMAIL = os.getenv("FROM_EMAIL", "noreply@devcamper.io")
FROM_NAME = os.getenv("FROM_NAME", "DevCamper")


def is_production() -> bool:
    return ENVIRONMENT == "production"
