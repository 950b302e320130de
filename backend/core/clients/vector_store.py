import logging
from functools import lru_cache

from langchain_community.vectorstores import SupabaseVectorStore

from settings import settings

from .gemini_client import get_embeddings_model
from .supabase_client import get_admin_client

logger = logging.getLogger(__name__)


@lru_cache
def get_vector_store() -> SupabaseVectorStore:
    """Get cached vector store over the pgvector chunk table."""
    logger.info(
        f"Connecting vector store table={settings.vector_table_name} "
        f"query={settings.vector_query_name}"
    )
    return SupabaseVectorStore(
        client=get_admin_client(),
        embedding=get_embeddings_model(),
        table_name=settings.vector_table_name,
        query_name=settings.vector_query_name,
    )
