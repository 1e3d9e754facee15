from typing import Annotated

from fastapi import Depends, Request

from backend import SessionStore
from completion import CompletionClient
from connections import ConnectionRegistry


def get_store(request: Request) -> SessionStore:
    return request.app.state.store


def get_registry(request: Request) -> ConnectionRegistry:
    return request.app.state.registry


def get_completion_client(request: Request) -> CompletionClient:
    return request.app.state.completion


StoreDep = Annotated[SessionStore, Depends(get_store)]
RegistryDep = Annotated[ConnectionRegistry, Depends(get_registry)]
CompletionDep = Annotated[CompletionClient, Depends(get_completion_client)]
