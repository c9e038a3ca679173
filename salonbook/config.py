"""
Runtime configuration read from the environment
"""
import os
from dotenv import load_dotenv

load_dotenv()

# Database URL
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./salonbook.db")

# Slot cadence for the public availability grid
SLOT_INTERVAL_MINUTES = int(os.getenv("SLOT_INTERVAL_MINUTES", "30"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
