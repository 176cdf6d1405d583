import base64
import io
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict

import qrcode
from qrcode.constants import ERROR_CORRECT_H

from errors import MalformedPayload, MissingField

REQUIRED_FIELDS = ("registrationId", "eventId", "userId")

QR_IMAGE_OPTS = {
    "version": None,
    "error_correction": ERROR_CORRECT_H,
    "box_size": 10,
    "border": 1,
}


@dataclass
class IssuedQr:
    payload: str
    data_url: str


def build_payload(registration) -> Dict[str, Any]:
    return {
        "registrationId": registration.id,
        "eventId": registration.event_id,
        "userId": registration.user_id,
        "userName": registration.user_name,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def render_png(data: str) -> bytes:
    qr = qrcode.QRCode(**QR_IMAGE_OPTS)
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


class QrIssuer:
    """Issues check-in QR codes for registrations and reads them back.

    Payloads are plain JSON with no signature or expiry, so anything read back
    must be checked against the stored registration before it is trusted.
    """

    def issue(self, registration) -> IssuedQr:
        payload = json.dumps(build_payload(registration), separators=(",", ":"))
        encoded = base64.b64encode(render_png(payload)).decode("ascii")
        return IssuedQr(payload=payload, data_url=f"data:image/png;base64,{encoded}")

    def validate(self, raw_payload: str) -> Dict[str, Any]:
        try:
            data = json.loads(raw_payload)
        except (TypeError, ValueError) as exc:
            raise MalformedPayload() from exc
        if not isinstance(data, dict):
            raise MalformedPayload()
        for key in REQUIRED_FIELDS:
            if data.get(key) in (None, ""):
                raise MissingField()
        return data
