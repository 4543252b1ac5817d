"""
Vision Client Module

Copyright (c) 2025 Alexandru Emanuel Vasile. All rights reserved.
Proprietary Software - 200-Key Limited Release License

This module sends a screenshot to a vision-capable model and returns a short
description that becomes the new filename. Two backends are supported: an
OpenAI-compatible chat completions endpoint and a local Ollama instance.
Each file gets exactly one request; failures are raised, never retried.

NOTICE: This software is proprietary and confidential.
See LICENSE.txt for full terms and conditions.

Author: Alexandru Emanuel Vasile
License: Proprietary (200-key limited release)
"""

import base64
import io
import os
import requests
from typing import Any, Dict, List, Optional
from jsonschema import validate, ValidationError
from PIL import Image, UnidentifiedImageError

from ..errors import ClassifierFailure, FailureReason
from ..utils.logger import get_logger

DEFAULT_PROMPT = (
    "Describe this screenshot in 2-5 words to be used as a concise and descriptive "
    "file name. Focus on the main subject or action. Give someone all the context "
    "they'd need to identify this screenshot."
)

# Only the fields we read are constrained
OPENAI_RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "choices": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "properties": {
                    "message": {
                        "type": "object",
                        "properties": {"content": {"type": "string"}},
                        "required": ["content"]
                    }
                },
                "required": ["message"]
            }
        }
    },
    "required": ["choices"]
}

OLLAMA_RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {"response": {"type": "string"}},
    "required": ["response"]
}


def encode_image(file_path: str, max_dimension: int = 512, quality: int = 70) -> str:
    """
    Downscale an image and return it as base64-encoded JPEG.

    Args:
        file_path (str): Image file
        max_dimension (int): Longest side after resizing, aspect ratio kept
        quality (int): JPEG quality (1-95)

    Returns:
        str: Base64 JPEG data

    Raises:
        ClassifierFailure: INVALID_IMAGE if the file is missing, unreadable or not an image
    """
    if not os.path.isfile(file_path) or not os.access(file_path, os.R_OK):
        raise ClassifierFailure(FailureReason.INVALID_IMAGE,
                                f"File does not exist or is not readable: {file_path}", file_path)
    try:
        with Image.open(file_path) as image:
            image.load()
            if max(image.size) > max_dimension:
                image.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)
            if image.mode != "RGB":
                image = image.convert("RGB")
            buffer = io.BytesIO()
            image.save(buffer, format="JPEG", quality=quality)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ClassifierFailure(FailureReason.INVALID_IMAGE,
                                f"Could not load image {file_path}: {e}", file_path) from e

    return base64.b64encode(buffer.getvalue()).decode("utf-8")


class VisionClient:
    """
    Base class for image description backends.

    Attributes:
        base_url (str): API base URL
        model (str): Model name
        timeout (int): Request timeout in seconds
        prompt (str): Instruction sent with every image
        max_dimension (int): Longest image side sent to the model
        jpeg_quality (int): JPEG quality of the uploaded image
    """

    provider = "base"

    def __init__(self, base_url: str, model: str, timeout: int = 30,
                 prompt: str = DEFAULT_PROMPT, max_dimension: int = 512,
                 jpeg_quality: int = 70, max_tokens: int = 30):
        self.base_url = base_url.rstrip('/')
        self.model = model
        self.timeout = timeout
        self.prompt = prompt
        self.max_dimension = max_dimension
        self.jpeg_quality = jpeg_quality
        self.max_tokens = max_tokens
        self.logger = get_logger()

    def has_credential(self) -> bool:
        return True

    def is_available(self) -> bool:
        raise NotImplementedError

    def describe(self, file_path: str) -> str:
        """
        Describe an image in a few words.

        Args:
            file_path (str): Image to describe

        Returns:
            str: Trimmed description

        Raises:
            ClassifierFailure: For any failure, with the matching FailureReason
        """
        if not self.has_credential():
            raise ClassifierFailure(FailureReason.MISSING_CREDENTIAL,
                                    f"No API key configured for {self.provider}", file_path)

        image_b64 = encode_image(file_path, self.max_dimension, self.jpeg_quality)
        self.logger.info("Vision request initiated", model=self.model,
                         provider=self.provider, file_path=file_path, event_type='vision_call')

        data = self._post(file_path, self._build_payload(image_b64))
        description = self._parse_response(file_path, data).strip()
        if not description:
            raise ClassifierFailure(FailureReason.MALFORMED_RESPONSE,
                                    "Model returned an empty description", file_path)
        self.logger.info("Vision response received", model=self.model, file_path=file_path,
                         description=description, event_type='vision_response')
        return description

    def _endpoint(self) -> str:
        raise NotImplementedError

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def _build_payload(self, image_b64: str) -> Dict[str, Any]:
        raise NotImplementedError

    def _parse_response(self, file_path: str, data: Dict[str, Any]) -> str:
        raise NotImplementedError

    def _post(self, file_path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = requests.post(
                self._endpoint(),
                json=payload,
                headers=self._headers(),
                timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            raise ClassifierFailure(FailureReason.NETWORK, "Request timed out", file_path) from e
        except requests.exceptions.RequestException as e:
            raise ClassifierFailure(FailureReason.NETWORK, f"Request failed: {e}", file_path) from e

        if response.status_code in (401, 403):
            raise ClassifierFailure(FailureReason.AUTHENTICATION,
                                    f"API rejected credentials (status {response.status_code})", file_path)
        if not 200 <= response.status_code < 300:
            raise ClassifierFailure(FailureReason.API_ERROR,
                                    f"API returned status {response.status_code}: {response.text[:200]}",
                                    file_path)
        try:
            return response.json()
        except ValueError as e:
            raise ClassifierFailure(FailureReason.MALFORMED_RESPONSE,
                                    f"Failed to parse JSON response: {e}", file_path) from e

    def _validated(self, file_path: str, data: Any, schema: Dict[str, Any]) -> Any:
        try:
            validate(instance=data, schema=schema)
        except ValidationError as e:
            raise ClassifierFailure(FailureReason.MALFORMED_RESPONSE,
                                    f"Unexpected response shape: {e.message}", file_path) from e
        return data


class OpenAIVisionClient(VisionClient):
    """Client for OpenAI-compatible chat completions with image input."""

    provider = "openai"

    def __init__(self, api_key: Optional[str] = None, base_url: str = "https://api.openai.com/v1",
                 model: str = "gpt-4o-mini", **kwargs):
        super().__init__(base_url=base_url, model=model, **kwargs)
        self.api_key = api_key or ""

    def has_credential(self) -> bool:
        return bool(self.api_key.strip())

    def is_available(self) -> bool:
        """
        Check if the API answers with the configured credential.

        Returns:
            bool: True if the models endpoint returns 200
        """
        if not self.has_credential():
            return False
        try:
            response = requests.get(f"{self.base_url}/models", headers=self._headers(), timeout=5)
            return response.status_code == 200
        except requests.exceptions.RequestException:
            return False

    def _endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _build_payload(self, image_b64: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": self.prompt},
                        {
                            "type": "image_url",
                            "image_url": {
                                "url": f"data:image/jpeg;base64,{image_b64}",
                                "detail": "low"
                            }
                        }
                    ]
                }
            ],
            "max_tokens": self.max_tokens
        }

    def _parse_response(self, file_path: str, data: Dict[str, Any]) -> str:
        data = self._validated(file_path, data, OPENAI_RESPONSE_SCHEMA)
        return data["choices"][0]["message"]["content"]


class OllamaVisionClient(VisionClient):
    """Client for a local Ollama instance running a multimodal model (e.g. llava)."""

    provider = "ollama"

    def __init__(self, base_url: str = "http://localhost:11434", model: str = "llava", **kwargs):
        super().__init__(base_url=base_url, model=model, **kwargs)

    def is_available(self) -> bool:
        """
        Check if Ollama service is available and running.

        Returns:
            bool: True if Ollama is accessible, False otherwise
        """
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=5)
            return response.status_code == 200
        except requests.exceptions.RequestException:
            return False

    def list_models(self) -> List[str]:
        """
        List available Ollama models.

        Returns:
            list: List of available model names
        """
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=self.timeout)
            if response.status_code == 200:
                models = response.json().get('models', [])
                return [model['name'] for model in models]
        except requests.exceptions.RequestException as e:
            self.logger.warning(f"Error listing models: {e}")

        return []

    def _endpoint(self) -> str:
        return f"{self.base_url}/api/generate"

    def _build_payload(self, image_b64: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "prompt": self.prompt,
            "images": [image_b64],
            "stream": False,
            "options": {"num_predict": self.max_tokens}
        }

    def _parse_response(self, file_path: str, data: Dict[str, Any]) -> str:
        data = self._validated(file_path, data, OLLAMA_RESPONSE_SCHEMA)
        return data["response"]


# Module-level convenience functions

def create_client(config) -> VisionClient:
    """
    Create a vision client from configuration.

    Args:
        config: Configuration object

    Returns:
        VisionClient: Configured client instance
    """
    options = dict(
        timeout=config.classifier_timeout,
        prompt=config.classifier_prompt,
        max_dimension=config.max_image_dimension,
        jpeg_quality=config.jpeg_quality,
        max_tokens=config.max_tokens
    )
    provider = config.classifier_provider
    if provider == "ollama":
        return OllamaVisionClient(
            base_url=config.classifier_base_url or "http://localhost:11434",
            model=config.classifier_model or "llava",
            **options
        )
    return OpenAIVisionClient(
        api_key=config.api_key,
        base_url=config.classifier_base_url or "https://api.openai.com/v1",
        model=config.classifier_model or "gpt-4o-mini",
        **options
    )
