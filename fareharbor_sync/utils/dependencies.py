import uuid
from fastapi import Request

from ..config import Settings


def get_app_settings(request: Request) -> Settings:
    """Settings the app was constructed with"""
    return request.app.state.settings


def get_request_id(request: Request) -> str:
    """Get request_id from request state or generate one"""
    return getattr(request.state, 'request_id', str(uuid.uuid4())[:8])
