"""Offline extraction client.

Returns a fixed, valid extraction payload without network calls. Used for
local development and demos, and as the template for new provider adapters:
implement BaseExtractionClient and register the provider in ExtractorFactory.
"""

import json
from typing import ClassVar

from referral_ocr.extraction.client_base import BaseExtractionClient


class ExampleClientAdapter(BaseExtractionClient):
    DEFAULT_RESPONSE: ClassVar[dict[str, object]] = {
        "patient": {
            "firstName": None,
            "lastName": None,
            "dateOfBirth": None,
            "phone": None,
            "gender": None,
        },
        "referral": {
            "referringPhysician": None,
            "referringFacility": None,
            "reasonForReferral": None,
        },
        "confidence": 0.0,
    }

    def __init__(self, response: dict[str, object] | None = None) -> None:
        self._response = response if response is not None else self.DEFAULT_RESPONSE

    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
    ) -> str:
        _ = model, temperature, system_prompt, user_prompt, json_schema
        return json.dumps(self._response)
