# SPDX-License-Identifier: MIT

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Optional, cast

from schedboard.exceptions import (
    RemoteError,
    RemoteUnavailableError,
    ScheduleError,
    ScheduleIdUnavailableError,
)
from schedboard.model.entity_id import ClientId, ServerId
from schedboard.model.notice import Notice, NoticeVariant
from schedboard.model.schedule_item import ScheduleItem, SchedulePatch
from schedboard.service.notice import Notify, format_field_errors, make_notice

if TYPE_CHECKING:
    from schedboard.repository.schedule import ScheduleService

logger = logging.getLogger(__name__)


class MutationQueue:
    """
    Optimistic local item list with per-item queues of remote mutations.

    Every mutation is applied locally first. Per client id there is at most
    one create in flight, one pending (coalesced) edit patch and one delete
    tombstone; a drain sends them in order once the server id is known.
    Different client ids never wait on each other.
    """

    def __init__(
        self,
        service: "ScheduleService",
        initial: list[ScheduleItem],
        notify: Optional[Notify] = None,
    ) -> None:
        self.service = service
        self.notify = notify
        self._items: list[ScheduleItem] = list(initial)

        self._pending_create: dict[ClientId, asyncio.Task[ServerId]] = {}
        self._failed_create: set[ClientId] = set()
        self._pending_edit: dict[ClientId, SchedulePatch] = {}
        self._pending_delete: set[ClientId] = set()
        self._edit_snapshot: dict[ClientId, list[ScheduleItem]] = {}
        self._delete_snapshot: dict[ClientId, list[ScheduleItem]] = {}
        self._draining: set[ClientId] = set()

        self._seen_server_id: dict[ClientId, bool] = {}
        self._server_ids: dict[ClientId, ServerId] = {}
        self._tasks: set[asyncio.Task] = set()

        self.__reconcile()

    @property
    def items(self) -> list[ScheduleItem]:
        return [cast(ScheduleItem, dict(item)) for item in self._items]

    def get(self, client_id: ClientId) -> Optional[ScheduleItem]:
        item = self.__find(client_id)
        return cast(ScheduleItem, dict(item)) if item is not None else None

    def pending_edit(self, client_id: ClientId) -> Optional[SchedulePatch]:
        patch = self._pending_edit.get(client_id)
        return cast(SchedulePatch, dict(patch)) if patch is not None else None

    def has_tombstone(self, client_id: ClientId) -> bool:
        return client_id in self._pending_delete

    def is_draining(self, client_id: ClientId) -> bool:
        return client_id in self._draining

    def has_failed_create(self, client_id: ClientId) -> bool:
        return client_id in self._failed_create

    def replace_items(self, items: list[ScheduleItem]) -> None:
        """Swap in an authoritative list, draining items whose id just arrived."""
        self._items = list(items)
        self.__reconcile()

    #
    # Create
    #

    def create(self, item: ScheduleItem) -> asyncio.Task[ServerId]:
        """
        Insert `item` locally and start its remote create.

        The returned task resolves to the server id. A failed create leaves
        the item in place; use `retry_create` or `discard` afterwards.
        """
        client_id = item["client_id"]
        if self.__find(client_id) is not None:
            raise ScheduleError(f"Item {client_id} already exists")
        self._items.append(item)
        self.__reconcile()
        return self.__start_create(item)

    def retry_create(self, client_id: ClientId) -> asyncio.Task[ServerId]:
        item = self.__find(client_id)
        if item is None or client_id not in self._failed_create:
            raise ScheduleError(f"No failed create to retry for {client_id}")
        return self.__start_create(item)

    def discard(self, client_id: ClientId) -> bool:
        """Drop an item that never reached the remote service."""
        item = self.__find(client_id)
        if item is None or item["server_id"] is not None:
            return False
        if client_id in self._pending_create:
            return False
        self._items = [i for i in self._items if i["client_id"] != client_id]
        self.__forget(client_id)
        logger.debug("discarded unsaved item %s", client_id)
        return True

    def __start_create(self, item: ScheduleItem) -> asyncio.Task[ServerId]:
        client_id = item["client_id"]
        self._failed_create.discard(client_id)
        task = asyncio.create_task(self.__create(item))
        self._pending_create[client_id] = task
        self.__track(task)
        return task

    async def __create(self, item: ScheduleItem) -> ServerId:
        client_id = item["client_id"]
        try:
            logger.debug("remote create for %s", client_id)
            try:
                result = await self.service.create(item)
            except RemoteUnavailableError as e:
                self.__fail_create(client_id, e.message, None)
                raise

            data = result.get("data") or {}
            server_id = data.get("server_id") if result["ok"] else None
            if server_id is None:
                message = result.get("message") or "Could not schedule quiz."
                field_errors = result.get("field_errors")
                self.__fail_create(client_id, message, field_errors)
                raise RemoteError(message, field_errors)
        finally:
            self._pending_create.pop(client_id, None)

        self._server_ids[client_id] = server_id
        self._items = [
            cast(ScheduleItem, {**i, "server_id": server_id})
            if i["client_id"] == client_id
            else i
            for i in self._items
        ]
        self.__emit("Scheduled", "Quiz added to calendar.", "success")
        self.__reconcile()
        return server_id

    def __fail_create(
        self,
        client_id: ClientId,
        message: str,
        field_errors: Optional[dict[str, Any]],
    ) -> None:
        self._failed_create.add(client_id)
        logger.warning("create failed for %s: %s", client_id, message)
        self.__emit("Failed", message + format_field_errors(field_errors), "error")

    #
    # Edit / delete
    #

    def edit(self, client_id: ClientId, patch: SchedulePatch) -> bool:
        """
        Apply `patch` locally and queue it for the remote service.

        Patches queued before the previous one was sent merge into it field by
        field, so only the latest value of each field is ever transmitted.
        """
        if client_id in self._pending_delete:
            return False
        index = self.__index(client_id)
        if index is None:
            return False

        if client_id not in self._edit_snapshot:
            self._edit_snapshot[client_id] = list(self._items)
        self._items[index] = cast(ScheduleItem, {**self._items[index], **patch})
        self._pending_edit[client_id] = cast(
            SchedulePatch, {**self._pending_edit.get(client_id, {}), **patch}
        )
        self.__schedule_drain(client_id)
        return True

    def delete(self, client_id: ClientId) -> bool:
        if client_id in self._pending_delete:
            logger.warning("delete for %s already queued", client_id)
            return False
        index = self.__index(client_id)
        if index is None:
            return False

        self._delete_snapshot[client_id] = list(self._items)
        del self._items[index]
        self._pending_delete.add(client_id)
        self.__schedule_drain(client_id)
        return True

    async def drain(self, client_id: ClientId) -> None:
        """Flush queued work for one item; a delete always wins over edits."""
        if client_id in self._draining:
            return
        self._draining.add(client_id)
        try:
            while True:
                if client_id in self._pending_delete:
                    await self.__drain_delete(client_id)
                    return
                if client_id not in self._pending_edit:
                    return
                if not await self.__drain_edit(client_id):
                    return
        finally:
            self._draining.discard(client_id)

    async def __drain_delete(self, client_id: ClientId) -> None:
        try:
            server_id = await self.__ensure_server_id(client_id)
        except (ScheduleIdUnavailableError, RemoteError):
            # Nothing exists remotely, so there is nothing to delete
            logger.warning("delete for %s abandoned, item was never created", client_id)
            self._pending_delete.discard(client_id)
            self.__clear_queued(client_id)
            return

        try:
            logger.debug("remote delete for %s (%s)", client_id, server_id)
            result = await self.service.delete(server_id)
        except RemoteUnavailableError as e:
            logger.warning("delete for %s failed, tombstone kept: %s", client_id, e)
            return

        self._pending_delete.discard(client_id)
        snapshot = self._delete_snapshot.get(client_id)
        self.__clear_queued(client_id)

        if not result["ok"]:
            if snapshot is not None:
                self.__restore(client_id, snapshot)
            logger.warning("delete for %s rejected, restored", client_id)
            self.__emit(
                "Failed",
                (result.get("message") or "Could not remove quiz.")
                + format_field_errors(result.get("field_errors")),
                "error",
            )
            return

        self.__emit("Removed", "Quiz removed from schedule.", "success")

    async def __drain_edit(self, client_id: ClientId) -> bool:
        try:
            server_id = await self.__ensure_server_id(client_id)
        except ScheduleIdUnavailableError:
            logger.debug("edit for %s waits for a server id", client_id)
            return False
        except RemoteError:
            logger.debug("edit for %s waits for a successful create", client_id)
            return False

        if client_id in self._pending_delete:
            return True

        patch = self._pending_edit.pop(client_id, None)
        if patch is None:
            return False
        snapshot = self._edit_snapshot.pop(client_id, None)

        try:
            logger.debug("remote edit for %s (%s): %s", client_id, server_id, patch)
            result = await self.service.edit(server_id, patch)
        except RemoteUnavailableError as e:
            self.__rollback_edit(client_id, snapshot)
            self.__emit("Failed", e.message or "Could not update schedule.", "error")
            return True

        if not result["ok"]:
            self.__rollback_edit(client_id, snapshot)
            self.__emit(
                "Failed",
                (result.get("message") or "Could not update schedule.")
                + format_field_errors(result.get("field_errors")),
                "error",
            )
            return True

        self.__emit("Updated", "Schedule updated.", "success")
        return True

    def __rollback_edit(
        self, client_id: ClientId, snapshot: Optional[list[ScheduleItem]]
    ) -> None:
        # Edits coalesced behind the failed patch were built on top of it
        self._pending_edit.pop(client_id, None)
        self._edit_snapshot.pop(client_id, None)
        if snapshot is not None and client_id in self._pending_delete:
            # Deleted while the edit was in flight; only a rejected delete may
            # bring it back, and then in its pre-edit state
            self.__patch_delete_snapshot(client_id, snapshot)
        elif snapshot is not None:
            self.__restore(client_id, snapshot)
        logger.warning("edit for %s failed, rolled back", client_id)

    def __patch_delete_snapshot(
        self, client_id: ClientId, snapshot: list[ScheduleItem]
    ) -> None:
        previous = next((i for i in snapshot if i["client_id"] == client_id), None)
        delete_snapshot = self._delete_snapshot.get(client_id)
        if previous is None or delete_snapshot is None:
            return
        self._delete_snapshot[client_id] = [
            previous if item["client_id"] == client_id else item
            for item in delete_snapshot
        ]

    async def __ensure_server_id(self, client_id: ClientId) -> ServerId:
        item = self.__find(client_id)
        if item is not None and item["server_id"] is not None:
            return item["server_id"]
        if client_id in self._server_ids:
            return self._server_ids[client_id]
        task = self._pending_create.get(client_id)
        if task is not None:
            return await asyncio.shield(task)
        raise ScheduleIdUnavailableError(client_id)

    def __restore(self, client_id: ClientId, snapshot: list[ScheduleItem]) -> None:
        """Put one item back the way `snapshot` had it, leaving the others alone."""
        position = next(
            (i for i, item in enumerate(snapshot) if item["client_id"] == client_id),
            None,
        )
        if position is None:
            return
        previous = snapshot[position]

        index = self.__index(client_id)
        if index is not None:
            self._items[index] = previous
        else:
            self._items.insert(min(position, len(self._items)), previous)
        self.__reconcile()

    def __clear_queued(self, client_id: ClientId) -> None:
        self._delete_snapshot.pop(client_id, None)
        self._pending_edit.pop(client_id, None)
        self._edit_snapshot.pop(client_id, None)

    def __forget(self, client_id: ClientId) -> None:
        self._failed_create.discard(client_id)
        self._pending_delete.discard(client_id)
        self.__clear_queued(client_id)
        self._seen_server_id.pop(client_id, None)

    #
    # Bookkeeping
    #

    def __reconcile(self) -> None:
        """Drain items that gained a server id while they had queued work."""
        for item in self._items:
            client_id = item["client_id"]
            had_id = self._seen_server_id.get(client_id, False)
            has_id = item["server_id"] is not None
            if has_id:
                self._server_ids[client_id] = cast(ServerId, item["server_id"])
            if (
                has_id
                and not had_id
                and (client_id in self._pending_edit or client_id in self._pending_delete)
            ):
                self.__schedule_drain(client_id)
            self._seen_server_id[client_id] = has_id

    def __schedule_drain(self, client_id: ClientId) -> None:
        self.__track(asyncio.create_task(self.drain(client_id)))

    def __track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self.__on_task_done)

    def __on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        # Remote failures were already reported as notices
        if error is not None and not isinstance(error, RemoteError):
            logger.error("queue task failed", exc_info=error)

    async def join(self) -> None:
        """
        Wait until every create and drain started so far has finished.

        Remote failures were already reported through notices and are not
        raised again; anything else propagates.
        """
        while self._tasks:
            results = await asyncio.gather(*list(self._tasks), return_exceptions=True)
            for result in results:
                if isinstance(result, BaseException) and not isinstance(
                    result, RemoteError
                ):
                    raise result

    def __emit(
        self, title: str, description: Optional[str], variant: NoticeVariant
    ) -> None:
        notice: Notice = make_notice(title, description, variant)
        if self.notify is not None:
            self.notify(notice)

    def __find(self, client_id: ClientId) -> Optional[ScheduleItem]:
        index = self.__index(client_id)
        return self._items[index] if index is not None else None

    def __index(self, client_id: ClientId) -> Optional[int]:
        for index, item in enumerate(self._items):
            if item["client_id"] == client_id:
                return index
        return None
