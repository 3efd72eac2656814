"""Transfer token subpackage.

Public surface
--------------
- TokenService, IssuedToken
- render_qr_data_url
"""
from __future__ import annotations

from kiosk_handoff.tokens.render import render_qr_data_url
from kiosk_handoff.tokens.service import IssuedToken, TokenService, sign_token, token_key

__all__ = ["IssuedToken", "TokenService", "render_qr_data_url", "sign_token", "token_key"]
