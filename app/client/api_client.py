"""Async HTTP client for the Second Light API."""

from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from app.client.poller import DocumentPoller, OnUpdate, Snapshot
from app.config import settings


class SecondLightClient:
    """
    Thin wrapper over ``httpx.AsyncClient`` that adds the bearer token.

    Usage:
        async with SecondLightClient("http://localhost:8000", token) as client:
            document = await client.wait_for_analysis(document_id)
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        api_prefix: str = settings.API_V1_PREFIX,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_prefix = api_prefix.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=base_url)
        self._headers = {"Authorization": f"Bearer {token}"}

    async def __aenter__(self) -> "SecondLightClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        response = await self._http.request(method, url, headers=self._headers, **kwargs)
        response.raise_for_status()
        return response

    # ============ DOCUMENTS ============

    async def get_document(self, document_id: str) -> Snapshot:
        response = await self._request("GET", f"{self.api_prefix}/documents/{document_id}")
        return response.json()

    async def list_documents(self) -> List[Snapshot]:
        response = await self._request("GET", f"{self.api_prefix}/documents")
        return response.json()

    async def upload_documents(
        self,
        files: Sequence[Tuple[str, bytes, str]],
        title: str,
        pdf_password: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Upload ``(filename, content, content_type)`` tuples as one batch."""
        data = {"title": title}
        if pdf_password:
            data["pdf_password"] = pdf_password
        response = await self._request(
            "POST",
            f"{self.api_prefix}/documents/upload",
            data=data,
            files=[("files", file) for file in files],
        )
        return response.json()

    async def delete_document(self, document_id: str) -> Dict[str, Any]:
        response = await self._request("DELETE", f"{self.api_prefix}/documents/{document_id}")
        return response.json()

    # ============ ANALYSIS ============

    async def process_document(
        self,
        document_id: str,
        document_text: str,
        document_type: str,
        document_title: str,
    ) -> Dict[str, Any]:
        """
        Trigger an analysis. Error bodies are returned, not raised, so the
        caller can read ``error`` and ``status``.
        """
        response = await self._http.post(
            "/process-document",
            headers=self._headers,
            json={
                "documentId": document_id,
                "documentText": document_text,
                "documentType": document_type,
                "documentTitle": document_title,
            },
        )
        return response.json()

    async def wait_for_analysis(
        self,
        document_id: str,
        interval: Optional[float] = None,
        on_update: Optional[OnUpdate] = None,
    ) -> Snapshot:
        """Poll the document until it is analyzed or failed."""
        poller = DocumentPoller(self.get_document, interval=interval, on_update=on_update)
        return await poller.poll(document_id)
