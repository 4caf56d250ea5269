"""OpenAI client factory for turnguard.

The client is built once per process and passed explicitly into the
adapters, so nothing in the core reaches for a global client.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from openai import AsyncOpenAI


def build_openai_client(timeout_seconds: float) -> AsyncOpenAI:
    """Create an async OpenAI client from environment variables.

    We read OPENAI_API_KEY via python-dotenv to keep secrets out of the repo.
    OPENAI_BASE_URL is honored for compatible gateways.
    """

    load_dotenv()

    api_key = os.getenv("OPENAI_API_KEY")
    base_url = os.getenv("OPENAI_BASE_URL") or None

    # Fail fast on missing credentials instead of failing the first turn.
    if not api_key:
        raise RuntimeError("Missing OPENAI_API_KEY in environment")

    logging.getLogger(__name__).info("Initializing OpenAI client")

    # The pipeline owns no retries; keep the SDK from retrying behind it.
    return AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout_seconds, max_retries=0)
