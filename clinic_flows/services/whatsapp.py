"""
WhatsApp Cloud API client (text messages).

Posts to {WHATSAPP_API_URL}/{WHATSAPP_PHONE_NUMBER_ID}/messages with the
Bearer token from WHATSAPP_TOKEN.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from clinic_flows.config import get_setting

logger = logging.getLogger(__name__)


class WhatsAppError(Exception):
    """Base error for WhatsApp sends"""
    pass


class WhatsAppNotConfiguredError(WhatsAppError):
    def __init__(self):
        super().__init__("WhatsApp API not configured")


class WhatsAppAPIError(WhatsAppError):
    def __init__(self, message: str, status_code: Optional[int] = None, payload: Optional[Dict] = None):
        self.status_code = status_code
        self.payload = payload or {}
        super().__init__(message)


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or 'Failed to send text message'
    return (payload.get('error') or {}).get('message') or 'Failed to send text message'


async def send_text_message(to: str, body: str) -> Dict[str, Any]:
    """
    Send a plain text WhatsApp message.

    Args:
        to: Recipient phone number (international format, digits only)
        body: Message text

    Returns:
        {'success': True, 'message_id': 'wamid...'}

    Raises:
        WhatsAppNotConfiguredError: token or phone number id missing
        WhatsAppAPIError: the API answered with a non-2xx status
    """
    token = get_setting('WHATSAPP_TOKEN')
    phone_number_id = get_setting('WHATSAPP_PHONE_NUMBER_ID')
    if not token or not phone_number_id:
        raise WhatsAppNotConfiguredError()

    url = f"{get_setting('WHATSAPP_API_URL').rstrip('/')}/{phone_number_id}/messages"
    headers = {
        'Authorization': f'Bearer {token}',
        'Content-Type': 'application/json'
    }
    payload = {
        'messaging_product': 'whatsapp',
        'to': to,
        'type': 'text',
        'text': {'body': body},
    }

    async with httpx.AsyncClient(timeout=get_setting('WHATSAPP_TIMEOUT', 30.0)) as client:
        response = await client.post(url, json=payload, headers=headers)

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response)
            logger.error(f"WhatsApp API error {e.response.status_code}: {message}")
            raise WhatsAppAPIError(message, e.response.status_code) from e

        result = response.json()

    messages = result.get('messages') or [{}]
    message_id = messages[0].get('id')
    logger.info(f"WhatsApp message sent to {to} (id={message_id})")
    return {'success': True, 'message_id': message_id}
