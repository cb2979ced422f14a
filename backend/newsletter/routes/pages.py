"""
Newsletter Backend: HTML Pages
==============================

What:  Home page and the login form.
How:   Jinja2 templates (autoescaped) rendered through FastAPI's Jinja2Templates.

POST /login answers with 303 See Other in both outcomes:
    valid credentials   → /
    invalid credentials → /login?error=Authentication+failed
"""

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession

from newsletter.database import get_db_session
from newsletter.exceptions import AuthenticationError
from newsletter.services.auth_service import auth_service

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

LOGIN_FAILED_MESSAGE = "Authentication failed"

router = APIRouter(tags=["Pages"])


@router.get("/", response_class=HTMLResponse, summary="Home page")
async def home(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(request, "home.html", {"title": "Home"})


@router.get("/login", response_class=HTMLResponse, summary="Login form")
async def login_form(
    request: Request,
    error: Optional[str] = Query(default=None, description="Message shown above the form"),
) -> HTMLResponse:
    return templates.TemplateResponse(
        request, "login.html", {"title": "Login", "error": error}
    )


@router.post("/login", response_class=RedirectResponse, summary="Submit login form")
async def login(
    username: str = Form(...),
    password: str = Form(...),
    db: AsyncSession = Depends(get_db_session),
) -> RedirectResponse:
    try:
        user_id = await auth_service.validate_credentials(db, username, password)
    except AuthenticationError:
        query = urlencode({"error": LOGIN_FAILED_MESSAGE})
        return RedirectResponse(url=f"/login?{query}", status_code=303)

    logger.info("User %s logged in", user_id)
    return RedirectResponse(url="/", status_code=303)
