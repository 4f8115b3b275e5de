# config.py
import os
from dotenv import load_dotenv

load_dotenv()

# Store connection
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./slot_swapper.db")

# Tokens are issued by the identity provider; we only verify them
SECRET_KEY = os.getenv("SECRET_KEY")
ALGORITHM = os.getenv("ALGORITHM", "HS256")

LOG_LEVEL = (os.getenv("LOG_LEVEL", "INFO") or "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE") or None
