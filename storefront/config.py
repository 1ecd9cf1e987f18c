import os
import logging
from pathlib import Path

from dotenv import load_dotenv

# Existing environment variables win over .env so tests can override them
load_dotenv(".env", override=False)

BACKEND_URL = os.environ.get("STOREFRONT_BACKEND_URL", "")
BACKEND_KEY = os.environ.get("STOREFRONT_BACKEND_KEY", "")
REQUEST_TIMEOUT = float(os.environ.get("STOREFRONT_REQUEST_TIMEOUT", "10"))

STORAGE_PATH = os.path.expanduser(os.environ.get(
    "STOREFRONT_STORAGE_PATH", str(Path.home() / ".storefront" / "storage.json")
))

MESSAGING_NUMBER = os.environ.get("STOREFRONT_MESSAGING_NUMBER", "256741068782")
CURRENCY = os.environ.get("STOREFRONT_CURRENCY", "UGX")
STORE_NAME = os.environ.get("STOREFRONT_STORE_NAME", "M.A Online Store")
# No name field is collected at checkout
DEFAULT_CUSTOMER_NAME = os.environ.get("STOREFRONT_DEFAULT_CUSTOMER_NAME", "Customer")

HOST = os.environ.get("STOREFRONT_HOST", "127.0.0.1")
PORT = int(os.environ.get("STOREFRONT_PORT", "8085"))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

_PLACEHOLDER_URL = "your-project-ref"
_PLACEHOLDER_KEY = "your-anon-key"


def is_backend_configured(url: str = None, key: str = None) -> bool:
    """
    True when both the backend URL and key are set and are not the
    placeholder values shipped in .env.example.
    """
    url = BACKEND_URL if url is None else url
    key = BACKEND_KEY if key is None else key
    return bool(url and key and _PLACEHOLDER_URL not in url and _PLACEHOLDER_KEY not in key)


def setup_logging(level: str = None) -> None:
    logging.basicConfig(
        level=level or LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
