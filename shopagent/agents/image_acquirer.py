"""
Image acquisition for new products.

Best effort only: every prompt gets exactly one image entry, either a generated
image as base64 attachment or a deterministic placeholder URL. Never raises.
"""

import base64
import re
import time
from typing import Dict, List, Optional

import requests

from ..core import config
from ..util.logging import logger

HF_INFERENCE_URL = "https://api-inference.huggingface.co/models"
PLACEHOLDER_URL = "https://picsum.photos/seed/{seed}/800/800"
PROMPT_PREFIX = "High quality professional product photography, studio lighting, white background, e-commerce style: "


class ImageAcquirer:
    """Text-to-image client with placeholder fallback."""

    def __init__(self, api_key: str = None, model: str = None, session: requests.Session = None,
                 max_wait_sec: float = None, timeout: float = 120):
        self.api_key = api_key if api_key is not None else config.HF_TOKEN
        self.model = model or config.HF_IMAGE_MODEL
        self.session = session or requests.Session()
        self.max_wait_sec = config.HF_MAX_WAIT_SEC if max_wait_sec is None else max_wait_sec
        self.timeout = timeout

    def acquire(self, prompts: List[str]) -> List[Dict[str, str]]:
        """Return one {"attachment": ...} or {"src": ...} entry per prompt, in order."""
        if not prompts:
            return []

        # Prompts come from validated actions, which only guarantee an array
        prompts = [str(prompt) for prompt in prompts]

        if not self.api_key:
            logger.warning("HF_TOKEN not set - using placeholder product images")
            return [{"src": placeholder_url(prompt, index)} for index, prompt in enumerate(prompts)]

        images = []
        # Sequential on purpose: free-tier inference endpoints rate limit hard
        for index, prompt in enumerate(prompts):
            encoded = self.generate_image(PROMPT_PREFIX + prompt)
            if encoded:
                images.append({"attachment": encoded})
            else:
                images.append({"src": placeholder_url(prompt, index)})
        return images

    def generate_image(self, prompt: str) -> Optional[str]:
        """Generate one image and return it base64-encoded, or None on any failure."""
        try:
            response = self._post(prompt)

            # Model cold start: wait for the advertised time once, then retry
            if response.status_code == 503:
                wait = min(_estimated_time(response), self.max_wait_sec)
                logger.info(f"Image model loading, waiting {wait}s before retry")
                time.sleep(wait)
                response = self._post(prompt)

            if not response.ok:
                logger.warning(f"Image generation failed: HTTP {response.status_code}")
                return None

            return base64.b64encode(response.content).decode("ascii")

        except requests.RequestException as e:
            logger.warning(f"Image generation failed: {e}")
            return None

    def _post(self, prompt: str) -> requests.Response:
        return self.session.post(
            f"{HF_INFERENCE_URL}/{self.model}",
            headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
            json={"inputs": prompt, "parameters": {"width": 768, "height": 768}},
            timeout=self.timeout,
        )


def placeholder_url(prompt: str, index: int = 0) -> str:
    """Deterministic placeholder image for a prompt."""
    seed = re.sub(r"[^a-zA-Z0-9]", "-", prompt)[:30]
    return PLACEHOLDER_URL.format(seed=f"{seed}-{index}")


def default_image_prompt(title: str) -> str:
    return f"Professional product photo of {title}, studio lighting, white background, e-commerce style"


def _estimated_time(response: requests.Response) -> float:
    try:
        return float(response.json().get("estimated_time", 30))
    except (ValueError, TypeError, AttributeError):
        return 30.0
