# ============================================================================
# asset_importer/core/llm/captioner.py
# ============================================================================
#
# Product metadata captioner.
#
# Generates a product name, description and keyword list for one uploaded
# asset using any OpenAI-compatible chat completion endpoint. Provider
# outages and malformed answers never surface as errors: the captioner
# falls back to metadata derived from the file name so the item still
# produces a usable CSV row.
#
# ============================================================================

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
import urllib3
from openai import OpenAI, OpenAIError

from ...config import Settings, settings
from ..utils.text_utils import clean_llm_response, filename_keywords, humanize_filename

logger = logging.getLogger("asset_importer.llm.captioner")

MAX_NAME_LENGTH = 80

SYSTEM_PROMPT = (
    "You are a professional e-commerce product description writer. "
    "Always return valid JSON only, no markdown or code blocks."
)

USER_PROMPT = """You are an expert e-commerce product description writer. Generate SEO-friendly product metadata for a digital product.

Product Details:
- Download File: {file_name}
- Category: {category_name}
- Image URL: {asset_url}

Generate:
1. A compelling product name (max 80 characters, no special characters except - and _)
2. A detailed product description (150-300 words, SEO-optimized)
3. 5-10 relevant keywords (related to the product and category)

Return ONLY a valid JSON object in this exact format:
{{
  "name": "Product Name Here",
  "description": "Detailed description here...",
  "keywords": ["keyword1", "keyword2", "keyword3"]
}}"""


@dataclass(frozen=True)
class ProductMetadata:
    name: str
    description: str
    keywords: List[str] = field(default_factory=list)
    fallback: bool = False


def fallback_metadata(file_name: str, category_name: str) -> ProductMetadata:
    """Build metadata from the file name alone."""
    category = category_name.lower()
    return ProductMetadata(
        name=humanize_filename(file_name) or "Product",
        description=f"High-quality {category} product: {file_name}",
        keywords=[category, *filename_keywords(file_name)],
        fallback=True,
    )


def parse_metadata(content: Optional[str]) -> ProductMetadata:
    """
    Parse a caption response into ``ProductMetadata``.

    Raises:
        ValueError: If the content is empty, not JSON, or lacks a name
            or description
    """
    if not content:
        raise ValueError("Empty response from LLM")

    text = clean_llm_response(content)
    try:
        data: Dict[str, Any] = json.loads(text)
    except json.JSONDecodeError:
        json_match = re.search(r'\{[\s\S]*\}', text)
        if not json_match:
            raise ValueError("LLM response is not JSON")
        data = json.loads(json_match.group(0))

    if not isinstance(data, dict):
        raise ValueError("LLM response is not a JSON object")

    name = data.get("name")
    description = data.get("description")
    if not isinstance(name, str) or not name.strip():
        raise ValueError("LLM response has no product name")
    if not isinstance(description, str) or not description.strip():
        raise ValueError("LLM response has no description")

    raw_keywords = data.get("keywords")
    if isinstance(raw_keywords, str):
        keywords = [k.strip() for k in raw_keywords.split(",")]
    elif isinstance(raw_keywords, list):
        keywords = [str(k).strip() for k in raw_keywords]
    else:
        keywords = []

    return ProductMetadata(
        name=name.strip()[:MAX_NAME_LENGTH],
        description=description.strip(),
        keywords=[k for k in keywords if k],
    )


class Captioner:
    """
    Metadata generator backed by an OpenAI-compatible endpoint.

    When no API key is configured the captioner stays usable and returns
    filename-derived metadata for every asset.
    """

    def __init__(self, cfg: Settings = settings, client: Optional[OpenAI] = None):
        self.model = cfg.openai_model
        self.temperature = cfg.caption_temperature
        self.max_tokens = cfg.caption_max_tokens
        self._client = client if client is not None else self._initialize_client(cfg)

    @staticmethod
    def _initialize_client(cfg: Settings) -> Optional[OpenAI]:
        if not cfg.openai_api_key:
            logger.warning("No LLM API key configured; captions will use filename metadata")
            return None

        if not cfg.openai_verify_ssl:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        http_client = httpx.Client(verify=cfg.openai_verify_ssl, timeout=cfg.openai_timeout)
        return OpenAI(
            api_key=cfg.openai_api_key,
            base_url=cfg.openai_base_url,
            http_client=http_client,
            max_retries=cfg.openai_max_retries,
        )

    @property
    def is_available(self) -> bool:
        return self._client is not None

    def _complete(self, prompt: str) -> Optional[str]:
        resp = self._client.chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        )
        if not resp.choices or resp.choices[0].message is None:
            return None
        return resp.choices[0].message.content

    async def caption(self, asset_url: str, file_name: str, category_name: str) -> ProductMetadata:
        """Generate product metadata for one asset."""
        if not self._client:
            return fallback_metadata(file_name, category_name)

        prompt = USER_PROMPT.format(file_name=file_name, category_name=category_name, asset_url=asset_url)
        try:
            content = await asyncio.to_thread(self._complete, prompt)
            return parse_metadata(content)
        except (OpenAIError, ValueError) as e:
            logger.warning(f"Caption generation failed for {file_name}, using fallback: {e}")
            return fallback_metadata(file_name, category_name)

