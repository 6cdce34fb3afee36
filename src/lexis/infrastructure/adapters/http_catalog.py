import logging
from datetime import datetime
from typing import Any

import httpx

from lexis.application.query_composer import compose_filter_body, compose_query
from lexis.domain.constants import DEFAULT_API_BASE_URL, REQUEST_TIMEOUT
from lexis.domain.errors import (
    NotFoundError,
    TransportError,
    ValidationError,
)
from lexis.domain.interfaces import CatalogClient
from lexis.domain.models import (
    FilterSpec,
    ImportResult,
    ItemPage,
    PageSpec,
    ReviewLogRecord,
    ReviewOutcome,
    ReviewStats,
    SortSpec,
    Tag,
    VocabularyItem,
)


# VocabularyItem field -> catalog payload key
ITEM_WIRE_NAMES = {
    "meaning": "zh_meaning",
    "part_of_speech": "pos",
    "phonetic": "ipa",
}

class HttpCatalogClient(CatalogClient):
    """Adapter for the vocabulary catalog REST API."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = REQUEST_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Args:
            base_url: Catalog service root, e.g. http://127.0.0.1:8000.
            timeout: Per-request timeout in seconds.
            client: Pre-built httpx client (tests inject one with a MockTransport).
        """
        self.logger = logging.getLogger(__name__)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------

    async def fetch_due_items(self) -> list[VocabularyItem]:
        data = await self._request("GET", "/vocab/due/review")
        return self._parse(data, lambda d: [self._build_item(x) for x in d])

    async def fetch_item(self, vocab_id: int) -> VocabularyItem:
        data = await self._request("GET", f"/vocab/{vocab_id}")
        return self._parse(data, self._build_item)

    async def submit_outcome(self, outcome: ReviewOutcome) -> ReviewLogRecord:
        payload: dict[str, Any] = {
            "vocabulary_id": outcome.vocabulary_id,
            "is_correct": outcome.is_correct,
            "review_type": outcome.review_type,
        }
        if outcome.response_time is not None:
            payload["response_time"] = outcome.response_time
        data = await self._request("POST", "/review/", json=payload)
        return self._parse(data, self._build_log)

    async def review_stats(self) -> ReviewStats:
        data = await self._request("GET", "/review/stats")
        return self._parse(data, self._build_stats)

    async def review_logs(
        self, vocabulary_id: int | None = None, limit: int | None = None
    ) -> list[ReviewLogRecord]:
        params = []
        if vocabulary_id:
            params.append(("vocabulary_id", str(vocabulary_id)))
        if limit:
            params.append(("limit", str(limit)))
        data = await self._request("GET", "/review/logs", params=params)
        return self._parse(data, lambda d: [self._build_log(x) for x in d])

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    async def list_items(
        self,
        filters: FilterSpec | None = None,
        page: PageSpec | None = None,
        sort: SortSpec | None = None,
    ) -> ItemPage:
        params = compose_query(filters, page, sort)
        data = await self._request("GET", "/vocab/", params=params)
        return self._parse(data, self._build_page)

    async def create_item(self, fields: dict[str, Any]) -> VocabularyItem:
        data = await self._request("POST", "/vocab/", json=self._item_payload(fields))
        return self._parse(data, self._build_item)

    async def update_item(self, vocab_id: int, fields: dict[str, Any]) -> VocabularyItem:
        data = await self._request(
            "PUT", f"/vocab/{vocab_id}", json=self._item_payload(fields)
        )
        return self._parse(data, self._build_item)

    async def delete_item(self, vocab_id: int) -> None:
        await self._request("DELETE", f"/vocab/{vocab_id}", expect_body=False)

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    async def list_tags(self) -> list[Tag]:
        data = await self._request("GET", "/tags/")
        return self._parse(data, lambda d: [self._build_tag(x) for x in d])

    async def create_tag(
        self, name: str, color: str | None = None, description: str | None = None
    ) -> Tag:
        payload = {"name": name}
        if color:
            payload["color"] = color
        if description:
            payload["description"] = description
        data = await self._request("POST", "/tags/", json=payload)
        return self._parse(data, self._build_tag)

    # ------------------------------------------------------------------
    # Import / Export
    # ------------------------------------------------------------------

    async def import_items(self, data: str, fmt: str) -> ImportResult:
        body = await self._request(
            "POST", "/import-export/import", json={"data": data, "format": fmt}
        )
        return self._parse(
            body,
            lambda d: ImportResult(
                message=str(d.get("message", "")),
                imported_count=int(d["imported_count"]),
                skipped_count=int(d["skipped_count"]),
            ),
        )

    async def export_items(self, fmt: str, filters: FilterSpec | None = None) -> bytes:
        payload: dict[str, Any] = {"format": fmt}
        if filters is not None:
            payload["filters"] = compose_filter_body(filters)
        resp = await self._send("POST", "/import-export/export", json=payload)
        return resp.content

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._client

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            resp = await self._get_client().request(method, path, **kwargs)
        except httpx.HTTPError as e:
            self.logger.error(f"Catalog call {method} {path} failed: {e}")
            raise TransportError(f"Could not reach catalog: {e}") from e

        if resp.is_success:
            return resp

        detail = self._error_detail(resp)
        self.logger.warning(f"Catalog {method} {path} -> {resp.status_code}: {detail}")
        if resp.status_code == 404:
            raise NotFoundError(detail or f"Not found: {path}", status_code=404)
        if resp.status_code in (400, 422):
            raise ValidationError(detail or "Request rejected", status_code=resp.status_code)
        raise TransportError(
            f"Catalog returned HTTP {resp.status_code}: {detail}", status_code=resp.status_code
        )

    async def _request(
        self, method: str, path: str, expect_body: bool = True, **kwargs
    ) -> Any:
        resp = await self._send(method, path, **kwargs)
        if not expect_body:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON from {path}: {e}") from e

    @staticmethod
    def _error_detail(resp: httpx.Response) -> str:
        try:
            body = resp.json()
        except ValueError:
            return resp.text.strip()
        if isinstance(body, dict) and "detail" in body:
            detail = body["detail"]
            if isinstance(detail, list):
                # FastAPI-style validation errors
                return "; ".join(str(d.get("msg", d)) for d in detail if d)
            return str(detail)
        return str(body)

    def _parse(self, data: Any, build):
        try:
            return build(data)
        except (KeyError, TypeError, ValueError) as e:
            self.logger.error(f"Unexpected catalog payload: {e}")
            raise TransportError(f"Unexpected response format: {e}") from e

    # ------------------------------------------------------------------
    # Payload mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _item_payload(fields: dict[str, Any]) -> dict[str, Any]:
        return {ITEM_WIRE_NAMES.get(k, k): v for k, v in fields.items()}

    @staticmethod
    def _dt(value: Any) -> datetime | None:
        if not value:
            return None
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))

    @classmethod
    def _build_tag(cls, d: dict) -> Tag:
        return Tag(
            id=int(d["id"]),
            name=str(d["name"]),
            color=d.get("color"),
            description=d.get("description"),
            created_at=cls._dt(d.get("created_at")),
        )

    @classmethod
    def _build_item(cls, d: dict) -> VocabularyItem:
        tags: list[Tag] = []
        seen: set[int] = set()
        for raw in d.get("tags") or []:
            tag = cls._build_tag(raw)
            if tag.id not in seen:
                seen.add(tag.id)
                tags.append(tag)
        return VocabularyItem(
            id=int(d["id"]),
            word=str(d["word"]),
            meaning=str(d["zh_meaning"]),
            part_of_speech=d.get("pos") or None,
            notes=d.get("notes") or None,
            examples=d.get("examples") or None,
            phonetic=d.get("ipa") or None,
            familiarity=int(d.get("familiarity", 1)),
            is_hard=bool(d.get("is_hard", False)),
            next_review_at=cls._dt(d.get("next_review_at")),
            created_at=cls._dt(d.get("created_at")),
            updated_at=cls._dt(d.get("updated_at")),
            last_reviewed_at=cls._dt(d.get("last_reviewed_at")),
            tags=tuple(tags),
        )

    @classmethod
    def _build_log(cls, d: dict) -> ReviewLogRecord:
        rt = d.get("response_time")
        return ReviewLogRecord(
            id=int(d["id"]),
            vocabulary_id=int(d["vocabulary_id"]),
            is_correct=bool(d["is_correct"]),
            review_type=str(d.get("review_type", "normal")),
            response_time=float(rt) if rt is not None else None,
            created_at=cls._dt(d.get("created_at")),
        )

    @staticmethod
    def _build_stats(d: dict) -> ReviewStats:
        return ReviewStats(
            total_reviews=int(d["total_reviews"]),
            correct_reviews=int(d["correct_reviews"]),
            accuracy_rate=float(d["accuracy_rate"]),
            today_reviews=int(d["today_reviews"]),
            due_vocabularies=int(d["due_vocabularies"]),
            hard_vocabularies=int(d["hard_vocabularies"]),
            total_vocabularies=int(d["total_vocabularies"]),
        )

    @classmethod
    def _build_page(cls, d: dict) -> ItemPage:
        return ItemPage(
            items=[cls._build_item(x) for x in d["items"]],
            total=int(d["total"]),
            page=int(d["page"]),
            size=int(d["size"]),
            page_count=int(d["pages"]),
        )

