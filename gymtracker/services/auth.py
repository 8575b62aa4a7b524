from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..errors import AuthError
from ..settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


class SupabaseIdentityProvider:
    """Email/password accounts against a Supabase (GoTrue) auth endpoint.

    Analytics and progression never look at the user; the identity only
    decides whose log collection is read. Methods report failures as
    ``{"error": message}`` rather than raising.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_settings()
        base_url = base_url or settings.supabase_url
        api_key = api_key or settings.supabase_anon_key
        if not base_url or not api_key:
            raise AuthError("supabase_url and supabase_anon_key must be configured")
        self.base_url = base_url.rstrip("/")
        self.access_token: Optional[str] = None
        self.user: Optional[Dict[str, Any]] = None

        headers: Dict[str, str] = {"Accept": "application/json", "apikey": api_key}
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=30.0,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"} if self.access_token else {}

    @staticmethod
    def _error_message(resp: httpx.Response) -> str:
        try:
            data = resp.json()
        except ValueError:
            return resp.text or f"HTTP {resp.status_code}"
        if isinstance(data, dict):
            return str(data.get("error_description") or data.get("msg") or data.get("message") or data.get("error") or data)
        return str(data)

    async def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        try:
            resp = await self._client.post(
                "/auth/v1/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
            )
        except httpx.HTTPError as e:
            logger.warning("auth: sign-in request failed: %s", e)
            return {"error": str(e)}
        if resp.status_code >= 400:
            return {"error": self._error_message(resp)}
        data = resp.json()
        self.access_token = data.get("access_token")
        self.user = data.get("user")
        logger.info("auth: signed in %s", email)
        return {"error": None}

    async def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> Dict[str, Any]:
        try:
            resp = await self._client.post(
                "/auth/v1/signup",
                json={"email": email, "password": password, "data": {"display_name": display_name}},
            )
        except httpx.HTTPError as e:
            logger.warning("auth: sign-up request failed: %s", e)
            return {"error": str(e)}
        if resp.status_code >= 400:
            return {"error": self._error_message(resp)}
        data = resp.json()
        # Sessions are only returned when email confirmation is disabled
        if data.get("access_token"):
            self.access_token = data["access_token"]
            self.user = data.get("user")
        logger.info("auth: signed up %s", email)
        return {"error": None}

    async def sign_out(self) -> None:
        if self.access_token:
            try:
                await self._client.post("/auth/v1/logout", headers=self._auth_headers())
            except httpx.HTTPError as e:
                logger.warning("auth: sign-out request failed: %s", e)
        self.access_token = None
        self.user = None

    async def get_user(self) -> Optional[Dict[str, Any]]:
        if not self.access_token:
            return None
        try:
            resp = await self._client.get("/auth/v1/user", headers=self._auth_headers())
        except httpx.HTTPError as e:
            logger.warning("auth: user lookup failed: %s", e)
            return None
        if resp.status_code >= 400:
            return None
        self.user = resp.json()
        return self.user


@lru_cache
def get_identity_provider() -> SupabaseIdentityProvider:
    return SupabaseIdentityProvider()


class Credentials(BaseModel):
    email: str
    password: str
    display_name: Optional[str] = None


@router.post("/signin")
async def signin(body: Credentials, provider: SupabaseIdentityProvider = Depends(get_identity_provider)) -> Dict[str, Any]:
    result = await provider.sign_in(body.email, body.password)
    if result["error"]:
        raise HTTPException(status_code=401, detail=result["error"])
    return {"user": provider.user}


@router.post("/signup")
async def signup(body: Credentials, provider: SupabaseIdentityProvider = Depends(get_identity_provider)) -> Dict[str, Any]:
    result = await provider.sign_up(body.email, body.password, body.display_name)
    if result["error"]:
        raise HTTPException(status_code=400, detail=result["error"])
    return {"user": provider.user}


@router.post("/signout")
async def signout(provider: SupabaseIdentityProvider = Depends(get_identity_provider)) -> Dict[str, Any]:
    await provider.sign_out()
    return {"status": "ok"}


@router.get("/user")
async def current_user(provider: SupabaseIdentityProvider = Depends(get_identity_provider)) -> Dict[str, Any]:
    user = await provider.get_user()
    if user is None:
        raise HTTPException(status_code=401, detail="Not signed in")
    return {"user": user}
