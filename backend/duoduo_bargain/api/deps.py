"""
FastAPI dependencies.

WHAT: Providers for the store, the chat client and the orchestrator
WHY: Endpoints receive collaborators explicitly; tests swap them via dependency_overrides
HOW: Thin functions over the module singletons
"""

from fastapi import Depends

from ..agents.bargain_graph import BargainGraph
from ..chat.provider import ChatCompletionClient
from ..chat.provider_factory import get_chat_client
from ..core.store import BargainStore, get_bargain_store


def store_dependency() -> BargainStore:
    return get_bargain_store()


def chat_client_dependency() -> ChatCompletionClient:
    return get_chat_client()


def bargain_graph_dependency(
    store: BargainStore = Depends(store_dependency),
    chat_client: ChatCompletionClient = Depends(chat_client_dependency),
) -> BargainGraph:
    """Orchestrator configured from settings."""
    return BargainGraph(store, chat_client)
