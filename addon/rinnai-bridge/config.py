#!/usr/bin/env python3
"""
Konfigurace Rinnai Bridge - všechny konstanty a environment variables.
"""

import os

# ============================================================================
# Helpers
# ============================================================================


def _get_int_env(name: str, default: int) -> int:
    """Vrátí int z env proměnné s bezpečným fallbackem."""
    raw = os.getenv(name)
    if raw is None:
        return default
    raw = str(raw).strip()
    if raw == "" or raw.lower() == "null":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """Vrátí float z env proměnné s bezpečným fallbackem."""
    raw = os.getenv(name)
    if raw is None:
        return default
    raw = str(raw).strip()
    if raw == "" or raw.lower() == "null":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# ============================================================================
# Boiler (appliance-facing) listener
# ============================================================================
BOILER_HOST = os.getenv("BOILER_HOST", "127.0.0.1")
BOILER_PORT = _get_int_env("BOILER_PORT", 9105)
# Jak dlouho HTTP vlákno čeká na zpracování výměny v event loopu
EXCHANGE_TIMEOUT_S = _get_float_env("EXCHANGE_TIMEOUT_S", 5.0)

# ============================================================================
# REST control API
# ============================================================================
RESTAPI_HOST = os.getenv("RESTAPI_HOST", "127.0.0.1")
RESTAPI_PORT = _get_int_env("RESTAPI_PORT", 8081)  # 0 = vypnuto

# ============================================================================
# Liveness & command queue
# ============================================================================
LIVENESS_TIMEOUT_S = _get_float_env("LIVENESS_TIMEOUT_S", 10.0)
COMMAND_TIMEOUT_S = _get_float_env("COMMAND_TIMEOUT_S", 10.0)

# ============================================================================
# MQTT Configuration
# ============================================================================
MQTT_HOST = os.getenv("MQTT_HOST", "")  # prázdné = MQTT vypnuto
MQTT_PORT = _get_int_env("MQTT_PORT", 1883)
MQTT_USERNAME = os.getenv("MQTT_USERNAME", "")
MQTT_PASSWORD = os.getenv("MQTT_PASSWORD", "")
MQTT_TOPIC_PREFIX = os.getenv("MQTT_TOPIC_PREFIX", "open-rinnai-server")
HASS_NODEID = os.getenv("HASS_NODEID", "open-rinnai-server")
HASS_STATUS_TOPIC = os.getenv("HASS_STATUS_TOPIC", "hass/status")
MQTT_PUBLISH_QOS = 1
MQTT_CONNECT_TIMEOUT = _get_int_env("MQTT_CONNECT_TIMEOUT", 10)
MQTT_HEALTH_CHECK_INTERVAL = _get_int_env("MQTT_HEALTH_CHECK_INTERVAL", 30)
# Home Assistant po restartu potřebuje chvíli, než přijme discovery
MQTT_DISCOVERY_DELAY_S = _get_float_env("MQTT_DISCOVERY_DELAY_S", 30.0)
AVAILABILITY_POLL_S = _get_float_env("AVAILABILITY_POLL_S", 0.5)

# ============================================================================
# Logging
# ============================================================================
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "")

# ============================================================================
# Device (for MQTT discovery)
# ============================================================================
DEVICE_NAME = os.getenv("DEVICE_NAME", "OpenRinnai")
