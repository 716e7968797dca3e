"""
Shared dependencies for the API routers.

The store, cache, remote client and import pipeline are built once in the
application lifespan and kept on ``app.state``; routers reach them through
these accessors so tests can swap any of them on a live app.
"""
from fastapi import Request

from prospect_crm.domain.imports.orchestrator import ImportPipeline
from prospect_crm.domain.prospects.store import ProspectStore
from prospect_crm.integrations.cache import LocalCache
from prospect_crm.integrations.sheets import SheetsClient


def get_store(request: Request) -> ProspectStore:
    return request.app.state.store


def get_cache(request: Request) -> LocalCache:
    return request.app.state.cache


def get_client(request: Request) -> SheetsClient:
    return request.app.state.client


def get_pipeline(request: Request) -> ImportPipeline:
    return request.app.state.pipeline
