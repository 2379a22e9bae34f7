DOMAIN = "paradox_mqtt"

PLATFORMS = ["alarm_control_panel", "binary_sensor", "sensor"]

# Platforms that must have registered their entity adders before sensor
# devices can be announced to Home Assistant.
SENSOR_PLATFORMS = ("binary_sensor", "sensor")

# Settings keys (flat string-keyed store)
CONF_BROKER_URL = "brokerUrl"
CONF_USERNAME = "username"
CONF_PASSWORD = "password"
CONF_CLIENT_ID = "clientId"
CONF_TLS = "tls"
CONF_REJECT_UNAUTHORIZED = "rejectUnauthorized"

CONF_TOPIC_SET_TARGET = "topicSetTarget"
CONF_TOPIC_GET_TARGET = "topicGetTarget"
CONF_TOPIC_GET_CURRENT = "topicGetCurrent"
CONF_TOPIC_TAMPER = "topicTamper"
CONF_TOPIC_ONLINE = "topicOnline"

CONF_QOS = "qos"
CONF_RETAIN = "retain"

CONF_PAYLOAD_DISARM = "payloadDisarm"
CONF_PAYLOAD_HOME = "payloadHome"
CONF_PAYLOAD_AWAY = "payloadAway"
CONF_PAYLOAD_NIGHT = "payloadNight"

CONF_STRICT_VOCABULARY = "strictVocabulary"
CONF_STATE_TOKENS = "stateTokensJson"
CONF_COMMAND_TOKENS = "commandTokensJson"
CONF_TRIGGERED_TOKENS = "triggeredTokensJson"

CONF_SENSORS = "sensorsJson"

# Sensor creation keys
CONF_NEW_ID = "new.id"
CONF_NEW_NAME = "new.name"
CONF_NEW_KIND = "new.kind"
CONF_NEW_CREATE = "new.create"

PANEL_TOPIC_KEYS = (
    CONF_TOPIC_GET_TARGET,
    CONF_TOPIC_GET_CURRENT,
    CONF_TOPIC_TAMPER,
    CONF_TOPIC_ONLINE,
)

DEFAULT_BROKER_URL = "mqtt://127.0.0.1:1883"
DEFAULT_CLIENT_ID = "ha-paradox-mqtt"
DEFAULT_KEEPALIVE = 60
RECONNECT_PERIOD_SECONDS = 3

# Order: home, away, night, disarmed
DEFAULT_STATE_TOKENS = ["armed_home", "armed_away", "armed_night", "disarmed"]
# Order: home, away, night, disarm
DEFAULT_COMMAND_TOKENS = ["arm_home", "arm_away", "arm_night", "disarm"]
DEFAULT_TRIGGERED_TOKENS = ["triggered", "alarm"]

PANEL_NATIVE_ID = "panel"
SENSOR_NATIVE_PREFIX = "sensor:"

# Dispatcher signal names
SIGNAL_SENSORS_ANNOUNCED = f"{DOMAIN}_sensors_announced"
SIGNAL_SENSOR_REMOVED = f"{DOMAIN}_sensor_removed"
SIGNAL_STATE_CHANGED = f"{DOMAIN}_state_changed"

# Persistent storage (HA Store)
STORAGE_VERSION = 1
STORAGE_KEY = f"{DOMAIN}.settings"
STORAGE_SAVE_DELAY = 1.0
