"""Gemini chat and embedding models used by the RAG pipeline."""
import logging
from functools import lru_cache
from typing import Optional, Tuple

from langchain_google_genai import ChatGoogleGenerativeAI, GoogleGenerativeAIEmbeddings

from settings import settings

logger = logging.getLogger(__name__)

SAMPLE_QUESTION = "How can I manage stress before exams?"


@lru_cache
def get_embeddings_model() -> GoogleGenerativeAIEmbeddings:
    return GoogleGenerativeAIEmbeddings(
        model=settings.embedding_model,
        google_api_key=settings.google_api_key
    )


@lru_cache
def get_chat_model(temperature: Optional[float] = None) -> ChatGoogleGenerativeAI:
    """Cached MindfulAI chat model; answers are capped at MAX_RESPONSE_TOKENS."""
    return ChatGoogleGenerativeAI(
        model=settings.chat_model,
        google_api_key=settings.google_api_key,
        temperature=settings.chat_temperature if temperature is None else temperature,
        max_output_tokens=settings.max_response_tokens
    )


def check_embeddings(text: str = SAMPLE_QUESTION) -> Tuple[int, bool]:
    """Embed ``text`` once and report the vector width.

    The second value says whether the width fits the pgvector column.
    """
    try:
        embedding = get_embeddings_model().embed_query(text)
    except Exception as e:
        logger.error(f"Embedding check failed: {str(e)}")
        raise

    dimension = len(embedding)
    if dimension != settings.embedding_dimensions:
        logger.warning(
            f"{settings.embedding_model} returned {dimension} dimensions, "
            f"vector column expects {settings.embedding_dimensions}"
        )
    return dimension, dimension == settings.embedding_dimensions


def ping_chat_model(prompt: str = "Reply with one calm word.") -> str:
    try:
        return get_chat_model(0.0).invoke(prompt).content
    except Exception as e:
        logger.error(f"Chat model check failed: {str(e)}")
        raise
