from dotenv import load_dotenv

import os

load_dotenv()

DEV = os.environ.get("DEV", "true").lower() == "true"
LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG" if DEV else "INFO").upper()

HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "3000"))
CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]

# Rooms
EMPTY_ROOM_GRACE_SEC = float(os.environ.get("EMPTY_ROOM_GRACE_SEC", "60"))
RECONNECT_WINDOW_SEC = float(os.environ.get("RECONNECT_WINDOW_SEC", "300"))

# Turn timer: extra seconds on top of the advertised duration before auto-pass
TURN_TIMER_GRACE_SEC = float(os.environ.get("TURN_TIMER_GRACE_SEC", "2"))
