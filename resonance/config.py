import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./resonance.db")
OURA_DATA_PATH = os.getenv("OURA_DATA_PATH", "./oura-data.json")
HRV_WINDOW_DAYS = int(os.getenv("HRV_WINDOW_DAYS", "14"))

TONE_SAMPLE_RATE = int(os.getenv("TONE_SAMPLE_RATE", "22050"))
TONE_VOLUME = float(os.getenv("TONE_VOLUME", "0.3"))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
