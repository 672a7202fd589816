# const.py
from .lib.protocol_const import RECENCY_WINDOW_MS

DOMAIN = "lexman_remote"

CONF_NAME = "name"
CONF_IEEE = "ieee"
CONF_MODEL = "model"
CONF_RECENCY_WINDOW_MS = "recency_window_ms"

DEFAULT_RECENCY_WINDOW_MS = RECENCY_WINDOW_MS
MAX_RECENCY_WINDOW_MS = 10000

MANUFACTURER = "Lexman / ADEO"

EVENT_BUTTON_PRESSED = f"{DOMAIN}_button_pressed"
ZHA_EVENT = "zha_event"

SERVICE_DECODE_FRAME = "decode_frame"

ATTR_ENTRY_ID = "entry_id"
ATTR_CLUSTER_ID = "cluster_id"
ATTR_PAYLOAD = "payload"
ATTR_ENDPOINT_ID = "endpoint_id"
ATTR_COMMAND_ID = "command_id"

PLATFORMS = ["sensor"]


def signal_action(entry_id: str) -> str:
    return f"{DOMAIN}_{entry_id}_action"
