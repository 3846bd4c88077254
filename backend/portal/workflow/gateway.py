import logging

import httpx
from pydantic import ValidationError

from portal.errors import AuthorizationDenied, CommitFailed
from portal.schemas.media import UploadAuthorization
from portal.workflow.types import Candidate, UploadRequest

logger = logging.getLogger("portal.workflow.gateway")

SLOT_FIELDS = {
    "school_certificate": "school_certificate_url",
    "grades": "grades_url",
    "report": "report_url",
}


class PortalGateway:
    """Candidate-side client for the portal API.

    ``client`` must already point at the API prefix, e.g.
    ``httpx.AsyncClient(base_url="https://portal.example/api/v1")``.
    """

    def __init__(self, client: httpx.AsyncClient, token: str | None = None):
        self._client = client
        self._token = token

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"} if self._token else {}

    async def login(self, email: str, password: str):
        r = await self._client.post("/accounts/login", json={"email": email, "password": password})
        r.raise_for_status()
        self._token = r.json()["token"]

    async def applications_open(self) -> bool:
        r = await self._client.get("/settings/applications-open", headers=self._headers())
        if r.status_code != 200:
            logger.warning("applications-open check returned %s", r.status_code)
            return False
        body = _json(r)
        if not isinstance(body, dict):
            logger.warning("applications-open check returned a malformed body")
            return False
        return body.get("is_open") is True

    async def me(self) -> Candidate:
        r = await self._client.get("/accounts/me", headers=self._headers())
        r.raise_for_status()
        user = r.json()

        status = report_status = None
        application_id = user.get("application_id")
        if application_id is not None:
            app_r = await self._client.get("/applications/me", headers=self._headers())
            app_r.raise_for_status()
            current = app_r.json()["status"]
            status, report_status = current["status"], current["report_status"]

        return Candidate(
            id=user["id"],
            first_name=user["first_name"],
            last_name=user["last_name"],
            email=user["email"],
            application_id=application_id,
            status=status,
            report_status=report_status,
        )

    async def save_application(self, form: dict) -> dict:
        try:
            r = await self._client.post("/applications", json=form, headers=self._headers())
        except httpx.HTTPError as exc:
            raise CommitFailed("Saving the application failed", error=type(exc).__name__) from exc
        if r.status_code != 200:
            raise CommitFailed("Saving the application failed", status_code=r.status_code, detail=_detail(r))
        saved = _json(r)
        if not isinstance(saved, dict) or "id" not in saved:
            raise CommitFailed("Saving the application failed", status_code=r.status_code, detail="malformed response")
        return saved

    async def request_upload(self, request: UploadRequest) -> UploadAuthorization:
        body = {
            "object_key": request.object_key,
            "content_type": request.content_type,
            "size": request.size_bytes,
            "checksum": request.integrity_token,
        }
        try:
            r = await self._client.post("/media/signed-url", json=body, headers=self._headers())
        except httpx.HTTPError as exc:
            raise AuthorizationDenied(
                "No upload URL was issued",
                object_key=request.object_key,
                error=type(exc).__name__,
            ) from exc

        if r.status_code != 200:
            raise AuthorizationDenied(
                "No upload URL was issued",
                object_key=request.object_key,
                status_code=r.status_code,
                detail=_detail(r),
            )
        try:
            authorization = UploadAuthorization.model_validate(r.json())
        except (ValueError, ValidationError) as exc:
            raise AuthorizationDenied(
                "No upload URL was issued",
                object_key=request.object_key,
                status_code=r.status_code,
                detail="malformed authorization",
            ) from exc
        if not authorization.url or authorization.object_key != request.object_key:
            raise AuthorizationDenied(
                "No upload URL was issued",
                object_key=request.object_key,
                detail="authorization does not match the request",
            )
        return authorization

    async def attach_object(self, application_id: int, slot: str, object_key: str):
        await self._put(f"/applications/{application_id}", {SLOT_FIELDS[slot]: object_key})

    async def update_status(self, application_id: int, **fields):
        await self._put(f"/applications/{application_id}/status", fields)

    async def _put(self, path: str, body: dict):
        try:
            r = await self._client.put(path, json=body, headers=self._headers())
        except httpx.HTTPError as exc:
            raise CommitFailed("Record update failed", path=path, error=type(exc).__name__) from exc
        if r.status_code != 200:
            raise CommitFailed("Record update failed", path=path, status_code=r.status_code, detail=_detail(r))


def _json(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return None


def _detail(response: httpx.Response):
    # Proxies may answer with a bare string or list.
    body = _json(response)
    return body.get("detail") if isinstance(body, dict) else None
