"""
CSRF Token Route
"""
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from investor_crm.middleware.csrf import set_csrf_cookie
from investor_crm.utils.csrf import CSRF_COOKIE_NAME, generate_csrf_token

router = APIRouter(tags=["csrf"])


@router.get("/csrf-token")
async def csrf_token(request: Request):
    """Issue a token for cookie sessions; reuses the existing cookie when present."""
    token = request.cookies.get(CSRF_COOKIE_NAME) or generate_csrf_token()
    response = JSONResponse(content={"csrf_token": token})
    set_csrf_cookie(response, token)
    return response
