"""AI integration modules."""

from .vision_client import (
    OllamaVisionClient,
    OpenAIVisionClient,
    VisionClient,
    create_client,
    encode_image,
)

__all__ = [
    'VisionClient',
    'OpenAIVisionClient',
    'OllamaVisionClient',
    'create_client',
    'encode_image'
]
