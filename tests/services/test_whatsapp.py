"""
Tests for the WhatsApp Cloud API client
"""

import httpx
import pytest
from unittest.mock import AsyncMock, patch

from clinic_flows.services.whatsapp import (
    WhatsAppAPIError,
    WhatsAppNotConfiguredError,
    send_text_message,
)

MESSAGES_URL = 'https://graph.example.test/v20.0/123456/messages'


def graph_response(status_code, payload):
    return httpx.Response(status_code, json=payload, request=httpx.Request('POST', MESSAGES_URL))


class TestSendTextMessage:

    @pytest.mark.asyncio
    async def test_success(self, app):
        """Posts the text payload and returns the message id"""
        post = AsyncMock(return_value=graph_response(200, {'messages': [{'id': 'wamid.1'}]}))

        with patch.object(httpx.AsyncClient, 'post', post):
            result = await send_text_message('966500000000', 'Your appointment is confirmed')

        assert result == {'success': True, 'message_id': 'wamid.1'}

        args, kwargs = post.call_args
        assert args[0] == MESSAGES_URL
        assert kwargs['json'] == {
            'messaging_product': 'whatsapp',
            'to': '966500000000',
            'type': 'text',
            'text': {'body': 'Your appointment is confirmed'},
        }
        assert kwargs['headers']['Authorization'] == 'Bearer test-token'

    @pytest.mark.asyncio
    async def test_api_error_message(self, app):
        """Non-2xx responses raise with the API's error message"""
        post = AsyncMock(return_value=graph_response(400, {'error': {'message': 'Invalid phone'}}))

        with patch.object(httpx.AsyncClient, 'post', post):
            with pytest.raises(WhatsAppAPIError) as exc_info:
                await send_text_message('bad', 'Hi')

        assert str(exc_info.value) == 'Invalid phone'
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_not_configured(self, app):
        app.config['WHATSAPP_TOKEN'] = ''

        with pytest.raises(WhatsAppNotConfiguredError):
            await send_text_message('966500000000', 'Hi')

    @pytest.mark.asyncio
    async def test_missing_message_id(self, app):
        post = AsyncMock(return_value=graph_response(200, {}))

        with patch.object(httpx.AsyncClient, 'post', post):
            result = await send_text_message('966500000000', 'Hi')

        assert result == {'success': True, 'message_id': None}
