"""Test token minting and QR payloads."""
import json
from datetime import timedelta

from intrack.services.qr_service import QRService
from conftest import T0


def test_mint_token_is_hex_with_expected_expiry(app):
    minted = QRService.mint_token(ttl_minutes=15, now=T0)

    assert len(minted.value) == 64
    int(minted.value, 16)
    assert minted.issued_at == T0
    assert minted.expires_at == T0 + timedelta(minutes=15)


def test_mint_token_uses_configured_ttl(app):
    minted = QRService.mint_token(now=T0)
    assert minted.expires_at - minted.issued_at == timedelta(minutes=app.config['QR_TOKEN_TTL_MINUTES'])


def test_minted_tokens_are_distinct(app):
    values = {QRService.mint_token(now=T0).value for _ in range(200)}
    assert len(values) == 200


def test_payload_parses_back(make_visit, student):
    visit = make_visit(student)
    token = visit.active_token

    is_valid, data, error = QRService.parse_payload(QRService.build_payload(token))

    assert is_valid, error
    assert data['visit_id'] == visit.id
    assert data['token'] == token.value
    assert data['generation'] == 1


def test_tampered_payload_is_rejected(make_visit, student):
    visit = make_visit(student)
    data = json.loads(QRService.build_payload(visit.active_token))
    data['visit_id'] = visit.id + 1

    is_valid, _, error = QRService.parse_payload(json.dumps(data))

    assert not is_valid
    assert error == 'Invalid QR code'


def test_malformed_payload_is_rejected(app):
    assert QRService.parse_payload('not json') == (False, None, 'Invalid QR code format')
    assert QRService.parse_payload('{"token": "abc"}')[0] is False


def test_qr_response_includes_png(make_visit, student):
    visit = make_visit(student)
    data = QRService.qr_response(visit.active_token, now=T0)

    assert data['qr_image'].startswith('data:image/png;base64,')
    assert data['token'] == visit.active_token.value
    assert data['is_active'] is True


def test_payload_with_non_string_token_is_rejected(make_visit, student):
    visit = make_visit(student)
    data = json.loads(QRService.build_payload(visit.active_token))
    data['token'] = [data['token']]

    assert QRService.parse_payload(json.dumps(data)) == (False, None, 'Invalid QR code format')
