"""
Tests for product image acquisition.
"""

import base64
from unittest.mock import Mock, patch

import requests

from shopagent.agents.image_acquirer import ImageAcquirer, default_image_prompt, placeholder_url


def _response(status_code=200, content=b"PNG", json_data=None):
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.content = content
    response.json.return_value = json_data or {}
    return response


class TestPlaceholders:

    def test_placeholder_is_deterministic(self):
        assert placeholder_url("a blue mug!", 1) == placeholder_url("a blue mug!", 1)
        assert placeholder_url("a blue mug!", 1) == "https://picsum.photos/seed/a-blue-mug--1/800/800"

    def test_without_key_returns_placeholders(self):
        session = Mock()
        images = ImageAcquirer(api_key="", session=session).acquire(["one", "two"])

        assert images == [{"src": placeholder_url("one", 0)}, {"src": placeholder_url("two", 1)}]
        session.post.assert_not_called()

    def test_empty_prompts(self):
        assert ImageAcquirer(api_key="").acquire([]) == []

    def test_default_prompt_mentions_title(self):
        assert "Ceramic Mug" in default_image_prompt("Ceramic Mug")


class TestGeneration:

    def test_generated_image_is_base64(self):
        session = Mock()
        session.post.return_value = _response(content=b"imagebytes")

        images = ImageAcquirer(api_key="hf_x", session=session).acquire(["mug"])

        assert images == [{"attachment": base64.b64encode(b"imagebytes").decode("ascii")}]
        assert session.post.call_args[1]["headers"]["Authorization"] == "Bearer hf_x"

    def test_failure_falls_back_per_prompt(self):
        session = Mock()
        session.post.side_effect = [_response(status_code=500), _response(content=b"ok")]

        images = ImageAcquirer(api_key="hf_x", session=session).acquire(["first", "second"])

        assert images[0] == {"src": placeholder_url("first", 0)}
        assert "attachment" in images[1]

    def test_transport_error_falls_back(self):
        session = Mock()
        session.post.side_effect = requests.Timeout("slow")

        images = ImageAcquirer(api_key="hf_x", session=session).acquire(["mug"])
        assert images == [{"src": placeholder_url("mug", 0)}]

    @patch("shopagent.agents.image_acquirer.time.sleep")
    def test_model_loading_retried_once(self, mock_sleep):
        session = Mock()
        session.post.side_effect = [
            _response(status_code=503, json_data={"estimated_time": 500}),
            _response(content=b"ok"),
        ]

        images = ImageAcquirer(api_key="hf_x", session=session, max_wait_sec=10).acquire(["mug"])

        mock_sleep.assert_called_once_with(10)
        assert "attachment" in images[0]


class TestNonStringPrompts:

    def test_placeholders_for_numeric_prompts(self):
        images = ImageAcquirer(api_key="").acquire([123, None])
        assert images == [{"src": placeholder_url("123", 0)}, {"src": placeholder_url("None", 1)}]

    def test_generation_with_numeric_prompt(self):
        session = Mock()
        session.post.return_value = _response(content=b"ok")

        images = ImageAcquirer(api_key="hf_x", session=session).acquire([42])

        assert "attachment" in images[0]
        assert session.post.call_args[1]["json"]["inputs"].endswith("42")
