"""Interpret decoded QR payloads (JSON, WiFi, URL, text) and format CLI reports."""

import json
import re
from dataclasses import dataclass

_WIFI_FIELD = {
    "ssid": re.compile(r"S:(.*?);"),
    "password": re.compile(r"P:(.*?);"),
    "type": re.compile(r"T:(.*?);"),
}


@dataclass(frozen=True)
class WifiCredentials:
    ssid: str
    type: str
    password: str | None = None
    encryption_type: str | None = None


@dataclass(frozen=True)
class DecodedPayload:
    kind: str  # "json" | "wifi" | "url" | "text"
    text: str
    wifi: WifiCredentials | None = None


def parse_wifi_string(data: str) -> WifiCredentials | None:
    """Parse a WIFI:S:<ssid>;T:<type>;P:<password>;; string.

    Returns None unless the string has the WIFI: prefix and a non-empty SSID.
    A missing type means an open network ("nopass").
    """
    if not data.startswith("WIFI:"):
        return None

    fields = {}
    for part in data[5:].split(";"):
        if part.startswith("S:"):
            fields["ssid"] = part[2:]
        elif part.startswith("T:"):
            fields["type"] = part[2:]
        elif part.startswith("P:"):
            fields["password"] = part[2:]

    if not fields.get("ssid"):
        return None
    return WifiCredentials(
        ssid=fields["ssid"],
        type=fields.get("type") or "nopass",
        password=fields.get("password"),
    )


def _wifi_from_json(data) -> WifiCredentials | None:
    if not isinstance(data, dict):
        return None
    if not (data.get("ssid") and data.get("password")):
        return None
    return WifiCredentials(
        ssid=str(data["ssid"]),
        password=str(data["password"]),
        type=str(data.get("type") or "WPA"),
        encryption_type=str(data.get("encryptionType") or "WPA"),
    )


def _wifi_from_match(text: str) -> WifiCredentials | None:
    found = {k: rx.search(text) for k, rx in _WIFI_FIELD.items()}
    if not (found["ssid"] and found["password"]):
        return None
    wifi_type = found["type"].group(1) if found["type"] else "WPA"
    return WifiCredentials(
        ssid=found["ssid"].group(1),
        password=found["password"].group(1),
        type=wifi_type,
        encryption_type=wifi_type,
    )


def classify_payload(text: str) -> DecodedPayload:
    """Classify a decoded string; JSON wins over WiFi, URL, then plain text."""
    try:
        data = json.loads(text)
    except ValueError:
        pass
    else:
        return DecodedPayload("json", text, _wifi_from_json(data))

    if text.startswith("WIFI:"):
        wifi = _wifi_from_match(text) or parse_wifi_string(text)
        return DecodedPayload("wifi", text, wifi)

    if text.startswith(("http://", "https://")):
        return DecodedPayload("url", text)

    return DecodedPayload("text", text)


def format_result(decoded: DecodedPayload) -> str:
    lines = [f"QR code ({decoded.kind}): {decoded.text}"]
    wifi = decoded.wifi
    if wifi is not None:
        lines.append(f"  Network:  {wifi.ssid}")
        lines.append(f"  Security: {wifi.type}")
        if wifi.password is not None:
            lines.append(f"  Password: {wifi.password}")
    return "\n".join(lines)
