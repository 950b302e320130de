"""
Retrieval-augmented chat for MindfulAI.

A message goes through a fixed pipeline: load the session transcript, ask the
model for a standalone search query, pull the closest chunks from the vector
store, answer with the MindfulAI prompt and persist the exchange.
"""
import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from langchain_core.documents import Document
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import PromptTemplate
from rest_framework.exceptions import NotFound

from core.clients.gemini_client import get_chat_model
from core.clients.supabase_client import get_admin_client
from core.clients.vector_store import get_vector_store
from core.exceptions import ServiceError
from core.permissions import ensure_owner
from settings import settings

logger = logging.getLogger(__name__)

NO_HISTORY = "No previous conversation history."
NO_CONTEXT = "No specific information available on this topic."
DEFAULT_TITLE = "New Conversation"
MAX_TITLE_LENGTH = 50
SOURCE_PREVIEW_LENGTH = 150


SEARCH_QUERY_PROMPT = """Based on the conversation history and the current question, generate a search query that would help find relevant information:

History: {history}

Question: {question}

Search Query:"""


CHAT_PROMPT = """You are MindfulAI, a mental health companion. Your goal is to provide supportive, empathetic responses
based on the user's questions and the provided information sources. Always answer in a calm, supportive tone.

Chat History:
{history}

User Question: {question}

Relevant Information:
{context}

Instructions:
- Answer based on the provided information when possible
- Be supportive and empathetic, focusing on mental wellbeing
- If you don't know or the information isn't in the context, be honest and helpful
- Do not mention that you're using specific documents or sources directly in your response
- Keep responses concise, clear, and conversational

Response:"""


TITLE_PROMPT = """Generate a concise, descriptive title (4-6 words max) for a chat conversation that starts with this message:
"{message}"

The title should be descriptive of the content or intent of the message.
Do not use quotes in the title. Just return the title text directly.

Title:"""


class ChatServiceError(ServiceError):
    default_detail = "Failed to process chat message"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def clean_title(raw: str) -> str:
    """Normalise a model-generated title to at most 50 characters."""
    title = raw.strip().strip('"\'').strip()
    if not title:
        return DEFAULT_TITLE
    if len(title) > MAX_TITLE_LENGTH:
        title = title[:MAX_TITLE_LENGTH - 3] + '...'
    return title


class ChatService:
    """Chat sessions, topics and the RAG answer pipeline."""

    def __init__(self, llm=None, vector_store=None, client=None, k: Optional[int] = None):
        self.llm = llm if llm is not None else get_chat_model()
        self.vector_store = vector_store if vector_store is not None else get_vector_store()
        self.client = client if client is not None else get_admin_client()
        self.k = k or settings.similarity_search_results

    def _run(self, template: str, **values) -> str:
        chain = PromptTemplate.from_template(template) | self.llm | StrOutputParser()
        return chain.invoke(values)

    # ----- RAG pipeline -----

    def load_chat_history(self, session_id: str) -> str:
        """Render the session transcript oldest first, or the no-history sentinel."""
        result = (
            self.client.table('chat_messages')
            .select('user_message, ai_response')
            .eq('session_id', session_id)
            .order('created_at')
            .execute()
        )
        if not result.data:
            return NO_HISTORY

        return "\n\n".join(
            f"User: {row['user_message']}\nAI: {row['ai_response']}"
            for row in result.data
        )

    def generate_search_query(self, history: str, question: str) -> str:
        return self._run(SEARCH_QUERY_PROMPT, history=history, question=question).strip()

    def retrieve_documents(self, query: str, category: Optional[str] = None) -> List[Document]:
        if category:
            return self.vector_store.similarity_search(query, k=self.k, filter={"category": category})
        return self.vector_store.similarity_search(query, k=self.k)

    @staticmethod
    def format_context(documents: List[Document]) -> str:
        if not documents:
            return NO_CONTEXT
        return "\n\n".join(
            f"Title: {doc.metadata.get('title') or 'Untitled'}\nContent: {doc.page_content}"
            for doc in documents
        )

    @staticmethod
    def extract_sources(documents: List[Document]) -> Optional[List[Dict]]:
        if not documents:
            return None
        return [
            {
                "title": doc.metadata.get('title') or 'Untitled',
                "content": doc.page_content[:SOURCE_PREVIEW_LENGTH] + '...',
            }
            for doc in documents
        ]

    def process_message(
        self,
        user_id: str,
        session_id: str,
        message: str,
        category: Optional[str] = None
    ) -> Dict:
        """
        Answer a user message with retrieved context and store the exchange.

        Args:
            user_id: Owner of the session
            session_id: Session the message belongs to
            message: The user's question
            category: Optional document category to restrict retrieval to

        Returns:
            Dict with ``response`` and ``sources`` (None when nothing was retrieved)
        """
        try:
            history = self.load_chat_history(session_id)
            search_query = self.generate_search_query(history, message)
            logger.info(f"Search query for session {session_id}: {search_query}")

            documents = self.retrieve_documents(search_query, category)
            logger.info(f"Retrieved {len(documents)} chunks for session {session_id}")

            response = self._run(
                CHAT_PROMPT,
                history=history,
                question=message,
                context=self.format_context(documents),
            )
        except Exception as e:
            logger.error(f"Error processing message for session {session_id}: {str(e)}", exc_info=True)
            raise ChatServiceError(f"Failed to process message: {str(e)}") from e

        self.save_chat_message(user_id, session_id, message, response)

        return {
            "response": response,
            "sources": self.extract_sources(documents),
        }

    def save_chat_message(self, user_id: str, session_id: str, message: str, response: str) -> None:
        timestamp = _now()
        try:
            self.client.table('chat_messages').insert({
                'user_id': user_id,
                'session_id': session_id,
                'user_message': message,
                'ai_response': response,
                'created_at': timestamp,
            }).execute()
        except Exception as e:
            raise ChatServiceError(f"Failed to save chat message: {str(e)}") from e

        try:
            self.client.table('chat_sessions').update(
                {'last_message_at': timestamp}
            ).eq('id', session_id).execute()
        except Exception as e:
            logger.error(f"Error updating session timestamp for {session_id}: {str(e)}")

    # ----- Sessions -----

    def create_chat_session(self, user_id: str, title: Optional[str] = None) -> str:
        timestamp = _now()
        result = self.client.table('chat_sessions').insert({
            'user_id': user_id,
            'title': title or f"Chat {datetime.now().strftime('%Y-%m-%d %H:%M')}",
            'created_at': timestamp,
            'last_message_at': timestamp,
        }).execute()
        session_id = result.data[0]['id']
        logger.info(f"Created chat session {session_id} for user {user_id}")
        return session_id

    def get_session(self, session_id: str) -> Dict:
        result = self.client.table('chat_sessions').select('*').eq('id', session_id).limit(1).execute()
        if not result.data:
            raise NotFound("Chat session not found")
        return result.data[0]

    def get_owned_session(self, user, session_id: str) -> Dict:
        session = self.get_session(session_id)
        ensure_owner(user, session)
        return session

    def get_chat_messages(self, session_id: str) -> List[Dict]:
        result = (
            self.client.table('chat_messages')
            .select('id, user_message, ai_response, created_at')
            .eq('session_id', session_id)
            .order('created_at')
            .execute()
        )
        return result.data or []

    def get_user_chat_sessions(self, user_id: str) -> List[Dict]:
        result = (
            self.client.table('chat_sessions')
            .select('*')
            .eq('user_id', user_id)
            .order('last_message_at', desc=True)
            .execute()
        )
        return result.data or []

    def get_last_chat_session(self, user_id: str) -> Optional[str]:
        result = (
            self.client.table('chat_sessions')
            .select('id')
            .eq('user_id', user_id)
            .order('last_message_at', desc=True)
            .limit(1)
            .execute()
        )
        return result.data[0]['id'] if result.data else None

    def delete_chat_session(self, user, session_id: str) -> None:
        self.get_owned_session(user, session_id)
        self.client.table('chat_messages').delete().eq('session_id', session_id).execute()
        self.client.table('chat_sessions').delete().eq('id', session_id).execute()
        logger.info(f"Deleted chat session {session_id}")

    def start_topic_chat(self, user_id: str, topic: str) -> Dict:
        session_id = self.create_chat_session(user_id, topic)
        result = self.process_message(user_id, session_id, f"Tell me about {topic}", category=topic)
        return {"session_id": session_id, **result}

    def generate_chat_title(self, user, session_id: str, message: str) -> str:
        """Ask the model for a short session title; falls back to a default."""
        try:
            self.get_owned_session(user, session_id)
            title = clean_title(self._run(TITLE_PROMPT, message=message[:200]))
        except Exception as e:
            logger.warning(f"Error generating chat title for {session_id}: {str(e)}")
            return DEFAULT_TITLE

        try:
            self.client.table('chat_sessions').update({'title': title}).eq('id', session_id).execute()
        except Exception as e:
            logger.error(f"Error updating session title for {session_id}: {str(e)}")
        return title

    def update_chat_title(self, user, session_id: str, title: str) -> None:
        self.get_owned_session(user, session_id)
        self.client.table('chat_sessions').update({'title': title}).eq('id', session_id).execute()

    # ----- Topics -----

    def get_chat_topics(self) -> List[Dict]:
        result = self.client.table('chat_topics').select('*').order('display_order').execute()
        return result.data or []

    def create_chat_topic(
        self,
        title: str,
        description: str = '',
        icon: str = '',
        category: str = 'general',
        display_order: int = 0,
        created_by: Optional[str] = None
    ) -> Dict:
        result = self.client.table('chat_topics').insert({
            'title': title,
            'description': description,
            'icon': icon,
            'category': category,
            'display_order': display_order,
            'created_by': created_by,
            'created_at': _now(),
        }).execute()
        return result.data[0]

    def update_chat_topic(self, topic_id: str, changes: Dict) -> Dict:
        result = self.client.table('chat_topics').update(changes).eq('id', topic_id).execute()
        if not result.data:
            raise NotFound("Topic not found")
        return result.data[0]

    def delete_chat_topic(self, topic_id: str) -> None:
        result = self.client.table('chat_topics').delete().eq('id', topic_id).execute()
        if not result.data:
            raise NotFound("Topic not found")

    # ----- Analytics -----

    def get_chat_analytics(self, start_date: Optional[datetime] = None, end_date: Optional[datetime] = None) -> Dict:
        end = end_date or datetime.now(timezone.utc)
        start = start_date or end - timedelta(days=30)
        start_iso, end_iso = start.isoformat(), end.isoformat()

        sessions = (
            self.client.table('chat_sessions')
            .select('id, user_id, title', count='exact')
            .gte('created_at', start_iso)
            .lte('created_at', end_iso)
            .execute()
        )
        messages = (
            self.client.table('chat_messages')
            .select('id', count='exact')
            .gte('created_at', start_iso)
            .lte('created_at', end_iso)
            .execute()
        )

        session_rows = sessions.data or []
        total_sessions = sessions.count if sessions.count is not None else len(session_rows)
        total_messages = messages.count if messages.count is not None else len(messages.data or [])
        topic_counts = Counter(row.get('title') or 'Untitled' for row in session_rows)

        return {
            "timeRange": {"start": start_iso, "end": end_iso},
            "totalSessions": total_sessions,
            "totalMessages": total_messages,
            "activeUsers": len({row['user_id'] for row in session_rows}),
            "messagesPerSession": round(total_messages / total_sessions, 2) if total_sessions else 0,
            "popularTopics": [
                {"title": title, "count": count}
                for title, count in topic_counts.most_common(10)
            ],
        }
