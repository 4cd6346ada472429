# SPDX-License-Identifier: MIT

import asyncio
import logging
from typing import Any, Optional, Protocol, cast
from urllib.parse import quote

import requests

from schedboard.exceptions import RemoteUnavailableError
from schedboard.model.entity_id import generate_client_id
from schedboard.model.remote import RemoteResult
from schedboard.model.schedule_item import ScheduleItem, SchedulePatch
from schedboard.time import datetime_from_str, datetime_to_iso_str

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30

_PATCH_FIELDS = {
    "start_date": "startDate",
    "end_date": "endDate",
    "attempts_allowed": "attemptsAllowed",
    "show_answers_after_attempt": "showAnswersAfterAttempt",
    "contribution": "contribution",
    "quiz_version": "quizVersion",
}


class ScheduleService(Protocol):
    async def create(self, item: ScheduleItem) -> RemoteResult: ...

    async def edit(self, server_id: str, patch: SchedulePatch) -> RemoteResult: ...

    async def delete(self, server_id: str) -> RemoteResult: ...

    async def list(self) -> RemoteResult: ...


class HttpScheduleService:
    """
    Class schedule endpoints of the remote class service.

    Results always carry `ok`; rejected requests keep the remote message and
    per-field validation errors. Connection failures raise
    RemoteUnavailableError instead.
    """

    def __init__(
        self,
        base_url: str,
        class_id: str,
        token: Optional[str] = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.class_id = class_id
        self.timeout = timeout
        self.headers = {"content-type": "application/json"}
        if token:
            self.headers["Authorization"] = (
                token if token.startswith("Bearer ") else f"Bearer {token}"
            )

    @property
    def schedule_url(self) -> str:
        return f"{self.base_url}/classes/{quote(self.class_id, safe='')}/schedule"

    def item_url(self, server_id: str) -> str:
        return f"{self.schedule_url}/item/{quote(server_id, safe='')}"

    async def create(self, item: ScheduleItem) -> RemoteResult:
        payload = self.__convert_item_for_serialization(item)
        result = await self.__request("POST", self.schedule_url, payload)
        return self.__convert_item_result(result)

    async def edit(self, server_id: str, patch: SchedulePatch) -> RemoteResult:
        payload = self.__convert_patch_for_serialization(patch)
        result = await self.__request("PATCH", self.item_url(server_id), payload)
        return self.__convert_item_result(result)

    async def delete(self, server_id: str) -> RemoteResult:
        return await self.__request("DELETE", self.item_url(server_id))

    async def list(self) -> RemoteResult:
        result = await self.__request("GET", self.schedule_url)
        if result["ok"]:
            result["data"] = [
                self.__convert_item_for_deserialization(raw)
                for raw in result.get("data") or []
            ]
        return result

    async def __request(
        self, method: str, url: str, payload: Optional[dict[str, Any]] = None
    ) -> RemoteResult:
        logger.debug("%s %s", method, url)
        try:
            response = await asyncio.to_thread(
                requests.request,
                method,
                url,
                headers=self.headers,
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RemoteUnavailableError(str(e) or "Network error") from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if not response.ok or not body.get("ok"):
            logger.debug("%s %s rejected with %s", method, url, response.status_code)
            return {
                "ok": False,
                "message": body.get("message") or f"Failed ({response.status_code})",
                "status": response.status_code,
                "field_errors": body.get("fieldErrors"),
            }

        result: RemoteResult = {"ok": True, "status": response.status_code}
        if "data" in body:
            result["data"] = body["data"]
        if body.get("message") is not None:
            result["message"] = body["message"]
        return result

    def __convert_item_result(self, result: RemoteResult) -> RemoteResult:
        if result["ok"] and isinstance(result.get("data"), dict):
            result["data"] = self.__convert_item_for_deserialization(result["data"])
        return result

    def __convert_item_for_serialization(self, item: ScheduleItem) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "quizId": item["quiz_id"],
            "startDate": datetime_to_iso_str(item["start_date"]),
            "endDate": datetime_to_iso_str(item["end_date"]),
        }
        optional = {
            "quizRootId": item["quiz_root_id"],
            "quizVersion": item["quiz_version"],
            "attemptsAllowed": item["attempts_allowed"],
            "showAnswersAfterAttempt": item["show_answers_after_attempt"],
            "contribution": item["contribution"],
        }
        for key, value in optional.items():
            if value is not None:
                payload[key] = value
        return payload

    def __convert_patch_for_serialization(
        self, patch: SchedulePatch
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        for field, key in _PATCH_FIELDS.items():
            if field not in patch:
                continue
            value = patch[field]  # type: ignore[literal-required]
            if field in ("start_date", "end_date"):
                value = datetime_to_iso_str(value)
            payload[key] = value
        return payload

    def __convert_item_for_deserialization(self, raw: dict[str, Any]) -> ScheduleItem:
        server_id = raw.get("_id") or raw.get("id")
        return {
            "client_id": raw.get("clientId") or server_id or generate_client_id(),
            "server_id": server_id,
            "quiz_id": raw.get("quizId", ""),
            "quiz_root_id": raw.get("quizRootId"),
            "quiz_version": raw.get("quizVersion"),
            "start_date": datetime_from_str(raw["startDate"]),
            "end_date": datetime_from_str(raw["endDate"]),
            "attempts_allowed": raw.get("attemptsAllowed"),
            "show_answers_after_attempt": raw.get("showAnswersAfterAttempt"),
            "contribution": raw.get("contribution"),
            "quiz_name": raw.get("quizName"),
            "subject": raw.get("subject"),
            "subject_color": raw.get("subjectColor"),
        }


def with_client_ids(items: list[ScheduleItem]) -> list[ScheduleItem]:
    """Give loaded items a client id, reusing the server id where there is one."""
    result: list[ScheduleItem] = []
    for item in items:
        if item.get("client_id"):
            result.append(item)
            continue
        client_id = item.get("server_id") or generate_client_id()
        result.append(cast(ScheduleItem, {**item, "client_id": client_id}))
    return result
