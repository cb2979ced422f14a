"""
FastAPI dependencies for the objects create_app() stores on `app.state`.

Handlers depend on these instead of importing module singletons, so a test
app built with its own settings, engine and email client is used end to end.
"""

from fastapi import Request

from newsletter.config import Settings
from newsletter.services.email_client import EmailClient


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_email_client(request: Request) -> EmailClient:
    return request.app.state.email_client
