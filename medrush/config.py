import os
from dotenv import load_dotenv

load_dotenv()

ALLOWED_ORIGINS = [o.strip() for o in os.getenv("MR_ALLOWED_ORIGINS","*").split(",")]
DEFAULT_CHANNEL = os.getenv("MR_DEFAULT_CHANNEL", "hospital")
DEFAULT_MESSAGE = "Ambulance en route"
KEEPALIVE_SECONDS = float(os.getenv("MR_KEEPALIVE_SECONDS", "15"))
UPSTREAM_TIMEOUT = float(os.getenv("MR_UPSTREAM_TIMEOUT", "10"))

# Device integrations; each route reports a 500 when its value is missing.
ESP32_IP = os.getenv("ESP32_IP")
ESP32_WS_IP = os.getenv("ESP32_WS_IP")
MQTT_BROKER_URL = os.getenv("MQTT_BROKER_URL")
BLYNK_TOKEN = os.getenv("BLYNK_TOKEN")
BLYNK_BASE_URL = os.getenv("BLYNK_BASE_URL", "https://blynk.cloud")
