"""
Notification Service: SMS alerts through the MSG91 flow API.
"""

import logging

import requests
from flask import current_app

logger = logging.getLogger('notification_service')


class SmsNotConfigured(Exception):
    pass


class NotificationService:
    MSG91_FLOW_URL = "https://api.msg91.com/api/v5/flow/"
    SENDER_ID = "AGRISM"

    @staticmethod
    def is_configured():
        return bool(current_app.config.get('MSG91_AUTH_KEY'))

    @staticmethod
    def send_sms(phone, message, language='en'):
        """
        Send one SMS. Returns the gateway JSON.
        Raises SmsNotConfigured without an auth key; gateway errors propagate
        as requests exceptions.
        """
        if not NotificationService.is_configured():
            raise SmsNotConfigured()

        response = requests.post(
            NotificationService.MSG91_FLOW_URL,
            headers={
                'Content-Type': 'application/json',
                'authkey': current_app.config['MSG91_AUTH_KEY'],
            },
            json={
                'flow_id': current_app.config.get('MSG91_TEMPLATE_ID'),
                'sender': NotificationService.SENDER_ID,
                'mobiles': phone,
                'message': message,
                'language': language,
            },
            timeout=current_app.config['HTTP_TIMEOUT_SECONDS'],
        )
        response.raise_for_status()
        logger.info(f"SMS sent to ...{str(phone)[-4:]}")
        return response.json()
