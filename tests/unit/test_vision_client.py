import base64
import io
from types import SimpleNamespace
from unittest.mock import Mock

import pytest
import requests
from PIL import Image

from screener.ai import vision_client
from screener.ai.vision_client import (
    OllamaVisionClient,
    OpenAIVisionClient,
    create_client,
    encode_image,
)
from screener.errors import ClassifierFailure, FailureReason


@pytest.fixture
def image_file(tmp_path):
    path = tmp_path / "capture.png"
    Image.new("RGBA", (1600, 900), (200, 30, 30, 255)).save(path)
    return path


def response(status=200, payload=None, text=""):
    mock = Mock()
    mock.status_code = status
    mock.text = text
    if isinstance(payload, Exception):
        mock.json.side_effect = payload
    else:
        mock.json.return_value = payload
    return mock


def openai_payload(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def test_encode_image_downscales_to_jpeg(image_file):
    data = base64.b64decode(encode_image(str(image_file), max_dimension=512))
    with Image.open(io.BytesIO(data)) as image:
        assert image.format == "JPEG"
        assert image.size == (512, 288)
        assert image.mode == "RGB"


def test_encode_image_rejects_non_images(tmp_path):
    bogus = tmp_path / "fake.png"
    bogus.write_text("not an image")

    with pytest.raises(ClassifierFailure) as info:
        encode_image(str(bogus))
    assert info.value.reason is FailureReason.INVALID_IMAGE

    with pytest.raises(ClassifierFailure) as info:
        encode_image(str(tmp_path / "missing.png"))
    assert info.value.reason is FailureReason.INVALID_IMAGE


def test_openai_describe_sends_low_detail_request(image_file, monkeypatch):
    post = Mock(return_value=response(payload=openai_payload("  Red Test Card \n")))
    monkeypatch.setattr(vision_client.requests, "post", post)

    client = OpenAIVisionClient(api_key="sk-test")
    assert client.describe(str(image_file)) == "Red Test Card"

    post.assert_called_once()
    args, kwargs = post.call_args
    assert args[0] == "https://api.openai.com/v1/chat/completions"
    assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
    body = kwargs["json"]
    assert body["model"] == "gpt-4o-mini"
    assert body["max_tokens"] == 30
    text_part, image_part = body["messages"][0]["content"]
    assert "2-5 words" in text_part["text"]
    assert image_part["image_url"]["detail"] == "low"
    assert image_part["image_url"]["url"].startswith("data:image/jpeg;base64,")


def test_missing_credential_makes_no_request(image_file, monkeypatch):
    post = Mock()
    monkeypatch.setattr(vision_client.requests, "post", post)

    client = OpenAIVisionClient(api_key="  ")
    assert not client.has_credential()
    with pytest.raises(ClassifierFailure) as info:
        client.describe(str(image_file))
    assert info.value.reason is FailureReason.MISSING_CREDENTIAL
    post.assert_not_called()


@pytest.mark.parametrize("mock_response, reason", [
    (response(401, text="invalid key"), FailureReason.AUTHENTICATION),
    (response(403), FailureReason.AUTHENTICATION),
    (response(500, text="server error"), FailureReason.API_ERROR),
    (response(429, text="rate limited"), FailureReason.API_ERROR),
    (response(payload=ValueError("no json")), FailureReason.MALFORMED_RESPONSE),
    (response(payload={"choices": []}), FailureReason.MALFORMED_RESPONSE),
    (response(payload={"error": "nope"}), FailureReason.MALFORMED_RESPONSE),
    (response(payload=openai_payload("   ")), FailureReason.MALFORMED_RESPONSE),
])
def test_openai_failures_are_classified(image_file, monkeypatch, mock_response, reason):
    monkeypatch.setattr(vision_client.requests, "post", Mock(return_value=mock_response))

    with pytest.raises(ClassifierFailure) as info:
        OpenAIVisionClient(api_key="sk-test").describe(str(image_file))
    assert info.value.reason is reason
    assert info.value.path == str(image_file)


@pytest.mark.parametrize("error", [
    requests.exceptions.ConnectionError("refused"),
    requests.exceptions.Timeout("slow"),
])
def test_network_errors(image_file, monkeypatch, error):
    monkeypatch.setattr(vision_client.requests, "post", Mock(side_effect=error))

    with pytest.raises(ClassifierFailure) as info:
        OpenAIVisionClient(api_key="sk-test").describe(str(image_file))
    assert info.value.reason is FailureReason.NETWORK


def test_ollama_describe(image_file, monkeypatch):
    post = Mock(return_value=response(payload={"response": "Terminal build output"}))
    monkeypatch.setattr(vision_client.requests, "post", post)

    client = OllamaVisionClient(base_url="http://localhost:11434/", model="llava")
    assert client.has_credential()
    assert client.describe(str(image_file)) == "Terminal build output"

    args, kwargs = post.call_args
    assert args[0] == "http://localhost:11434/api/generate"
    assert kwargs["json"]["stream"] is False
    assert len(kwargs["json"]["images"]) == 1


def test_ollama_availability_and_models(monkeypatch):
    get = Mock(return_value=response(payload={"models": [{"name": "llava:latest"}, {"name": "bakllava"}]}))
    monkeypatch.setattr(vision_client.requests, "get", get)

    client = OllamaVisionClient()
    assert client.is_available()
    assert client.list_models() == ["llava:latest", "bakllava"]

    monkeypatch.setattr(vision_client.requests, "get",
                        Mock(side_effect=requests.exceptions.ConnectionError("down")))
    assert not client.is_available()
    assert client.list_models() == []


def test_openai_availability(monkeypatch):
    monkeypatch.setattr(vision_client.requests, "get", Mock(return_value=response(200, payload={})))
    assert OpenAIVisionClient(api_key="sk-test").is_available()
    assert not OpenAIVisionClient(api_key=None).is_available()


def test_create_client_switches_on_provider():
    settings = dict(
        classifier_timeout=10,
        classifier_prompt="Name this",
        max_image_dimension=256,
        jpeg_quality=60,
        max_tokens=20,
        classifier_base_url=None,
        classifier_model=None,
        api_key="sk-config",
    )

    openai = create_client(SimpleNamespace(classifier_provider="openai", **settings))
    assert isinstance(openai, OpenAIVisionClient)
    assert openai.api_key == "sk-config"
    assert openai.max_dimension == 256
    assert openai.prompt == "Name this"

    ollama = create_client(SimpleNamespace(classifier_provider="ollama", **settings))
    assert isinstance(ollama, OllamaVisionClient)
    assert ollama.model == "llava"
    assert ollama.base_url == "http://localhost:11434"
