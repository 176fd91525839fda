"""
Translation Service: Google Translate v2 over plain HTTP.

A ``Translator`` lives for one request: identical strings are sent once.
Any failure (no key, network, bad payload) returns the English text.
"""

import logging

import requests
from flask import current_app

logger = logging.getLogger('translation_service')

SUPPORTED_LANGUAGES = ('en', 'hi', 'mr')


class Translator:
    API_URL = "https://translation.googleapis.com/language/translate/v2"

    def __init__(self, target_lang):
        self.target_lang = target_lang
        self.api_key = current_app.config.get('GOOGLE_TRANSLATE_API_KEY')
        self.timeout = current_app.config['HTTP_TIMEOUT_SECONDS']
        self._cache = {}

    def translate(self, text):
        if not text or self.target_lang == 'en':
            return text
        if text in self._cache:
            return self._cache[text]

        translated = self._call_api(text)
        self._cache[text] = translated
        return translated

    def _call_api(self, text):
        if not self.api_key:
            return text
        try:
            response = requests.post(
                self.API_URL,
                params={'key': self.api_key},
                json={'q': text, 'source': 'en', 'target': self.target_lang, 'format': 'text'},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()['data']['translations'][0]['translatedText']
        except (requests.RequestException, KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"Translation to {self.target_lang} failed: {e}")
            return text
