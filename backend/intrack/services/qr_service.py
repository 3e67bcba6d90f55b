"""QR token minting and QR code payload/image service."""
import base64
import hashlib
import io
import json
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

import qrcode
from flask import current_app

from intrack.utils.helpers import utcnow

PAYLOAD_FIELDS = ('visit_id', 'token', 'generation', 'issued_at', 'expires_at', 'checksum')


@dataclass(frozen=True)
class MintedToken:
    value: str
    issued_at: datetime
    expires_at: datetime


class QRService:
    """Service for QR code operations."""

    @staticmethod
    def mint_token(ttl_minutes: int = None, now: datetime = None, num_bytes: int = None) -> MintedToken:
        """Mint an unguessable token from the OS CSPRNG.

        No persistence happens here; the caller stores the token.
        """
        if ttl_minutes is None:
            ttl_minutes = current_app.config['QR_TOKEN_TTL_MINUTES']
        if num_bytes is None:
            num_bytes = current_app.config.get('QR_TOKEN_BYTES', 32)

        issued_at = now or utcnow()
        return MintedToken(
            value=secrets.token_hex(num_bytes),
            issued_at=issued_at,
            expires_at=issued_at + timedelta(minutes=ttl_minutes)
        )

    @staticmethod
    def _checksum(visit_id: int, token: str, generation: int, expires_at: str) -> str:
        data_string = f"{visit_id}{token}{generation}{expires_at}"
        return hashlib.sha256(data_string.encode()).hexdigest()[:16]

    @staticmethod
    def build_payload(token, refreshed_at: datetime = None) -> str:
        """Compact JSON string encoded into the QR image."""
        expires_at = token.expires_at.isoformat()
        qr_data = {
            'visit_id': token.visit_id,
            'token': token.value,
            'generation': token.generation,
            'issued_at': token.issued_at.isoformat(),
            'expires_at': expires_at,
            'refreshed_at': refreshed_at.isoformat() if refreshed_at else None,
            'checksum': QRService._checksum(token.visit_id, token.value, token.generation, expires_at)
        }
        return json.dumps(qr_data, separators=(',', ':'))

    @staticmethod
    def parse_payload(qr_data_string: str) -> Tuple[bool, Optional[Dict], Optional[str]]:
        """
        Parse scanned QR data.
        Returns: (is_valid, data, error_message)
        """
        try:
            qr_data = json.loads(qr_data_string)
        except (TypeError, json.JSONDecodeError):
            return False, None, "Invalid QR code format"

        if not isinstance(qr_data, dict):
            return False, None, "Invalid QR code format"

        for field in PAYLOAD_FIELDS:
            if field not in qr_data:
                return False, None, f"Missing field: {field}"

        if not isinstance(qr_data['token'], str) or isinstance(qr_data['visit_id'], bool) \
                or not isinstance(qr_data['visit_id'], int):
            return False, None, "Invalid QR code format"

        expected = QRService._checksum(
            qr_data['visit_id'], qr_data['token'], qr_data['generation'], qr_data['expires_at']
        )
        if not secrets.compare_digest(str(qr_data['checksum']).encode(), expected.encode()):
            return False, None, "Invalid QR code"

        return True, qr_data, None

    @staticmethod
    def render_image(payload: str) -> str:
        """Render a payload string to a PNG data URL."""
        config = current_app.config
        qr = qrcode.QRCode(
            version=None,  # Auto-determine size
            error_correction=qrcode.constants.ERROR_CORRECT_H,
            box_size=config.get('QR_IMAGE_BOX_SIZE', 10),
            border=config.get('QR_IMAGE_BORDER', 2),
        )
        qr.add_data(payload)
        qr.make(fit=True)

        img = qr.make_image(
            fill_color=config.get('QR_FILL_COLOR', 'black'),
            back_color=config.get('QR_BACK_COLOR', 'white')
        )

        buffered = io.BytesIO()
        img.save(buffered, format="PNG")
        img_str = base64.b64encode(buffered.getvalue()).decode()

        return f"data:image/png;base64,{img_str}"

    @staticmethod
    def qr_response(token, refreshed_at: datetime = None, now: datetime = None) -> Dict:
        """Token metadata, payload and rendered image for API responses."""
        payload = QRService.build_payload(token, refreshed_at)
        data = token.to_dict(now=now)
        data.update({
            'qr_data': payload,
            'qr_image': QRService.render_image(payload)
        })
        return data
