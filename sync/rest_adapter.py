"""REST-Backend (PostgREST/Supabase-Stil) über httpx.AsyncClient.

Tabellen: universities, subjects, items (snake_case-Spalten, created_at).
  Lesen:    GET  /rest/v1/<tabelle>?select=...&order=created_at.asc
  Upsert:   POST /rest/v1/<tabelle>?on_conflict=id
            mit "Prefer: resolution=merge-duplicates"
  Löschen:  DELETE /rest/v1/<tabelle>?id=eq.<id>

Änderungen werden per Polling eines Fingerprints der drei Tabellen erkannt.
"""

import asyncio
import hashlib
import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from config.schema import BackendConfig
from models.item import Item
from models.store import Store
from models.subject import Subject
from sync.adapter import ChangeCallback, PersistenceAdapter, RecordKind, Subscription
from sync.rows import item_row, store_from_rows, subject_row, university_row

logger = logging.getLogger(__name__)

_DEFAULTS = BackendConfig()

SELECT_COLUMNS = {
    RecordKind.UNIVERSITY: "id,name,created_at",
    RecordKind.SUBJECT: "id,university_id,name,owner,method,remark,created_at",
    RecordKind.ITEM: (
        "id,subject_id,title,status,priority,deadline,progress,"
        "comment,professor,updated_at,created_at"
    ),
}


class RestAdapter(PersistenceAdapter):
    """Spiegelt den Store in ein REST-Backend; Fehler → Log + False/None."""

    name = "rest"

    def __init__(
        self,
        url: str,
        api_key: str = "",
        timeout: float = _DEFAULTS.timeout_seconds,
        poll_interval: float = _DEFAULTS.poll_interval_seconds,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = url.rstrip("/") + "/rest/v1"
        self.poll_interval = poll_interval
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )
        self._pollers: list[asyncio.Task] = []

    @classmethod
    def from_config(cls, config: BackendConfig, **kwargs) -> "RestAdapter":
        return cls(
            url=config.url,
            api_key=config.api_key,
            timeout=config.timeout_seconds,
            poll_interval=config.poll_interval_seconds,
            **kwargs,
        )

    # ─── Lesen ───

    async def _select(self, kind: RecordKind) -> list[dict]:
        response = await self.client.get(
            f"/{kind.value}",
            params={"select": SELECT_COLUMNS[kind], "order": "created_at.asc"},
        )
        response.raise_for_status()
        return response.json()

    async def fetch_all(self) -> Optional[Store]:
        try:
            universities, subjects, items = await asyncio.gather(
                self._select(RecordKind.UNIVERSITY),
                self._select(RecordKind.SUBJECT),
                self._select(RecordKind.ITEM),
            )
            store = store_from_rows(universities, subjects, items)
        except httpx.HTTPError as e:
            logger.error(f"Backend nicht erreichbar ({self.base_url}): {e}")
            return None
        except (ValueError, KeyError, ValidationError) as e:
            logger.error(f"Ungültige Antwort vom Backend: {e}")
            return None
        logger.debug(
            f"Backend geladen: {len(universities)} Universités, "
            f"{len(subjects)} Matières, {len(items)} Fiches"
        )
        return store

    # ─── Schreiben ───

    async def _upsert(self, kind: RecordKind, row: dict) -> bool:
        try:
            response = await self.client.post(
                f"/{kind.value}",
                params={"on_conflict": "id"},
                json=row,
                headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                f"Upsert {kind.value}/{row['id']} fehlgeschlagen: "
                f"HTTP {e.response.status_code} {e.response.text}"
            )
            return False
        except httpx.HTTPError as e:
            logger.warning(f"Upsert {kind.value}/{row['id']} fehlgeschlagen: {e}")
            return False
        return True

    async def _delete(self, kind: RecordKind, record_id: str) -> bool:
        try:
            response = await self.client.delete(
                f"/{kind.value}", params={"id": f"eq.{record_id}"}
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Löschen {kind.value}/{record_id} fehlgeschlagen: {e}")
            return False
        return True

    async def upsert_university(self, university_id: str, name: str) -> bool:
        return await self._upsert(
            RecordKind.UNIVERSITY, university_row(university_id, name)
        )

    async def upsert_subject(
        self, subject_id: str, university_id: str, subject: Subject
    ) -> bool:
        return await self._upsert(
            RecordKind.SUBJECT, subject_row(subject_id, university_id, subject)
        )

    async def upsert_item(self, item_id: str, subject_id: str, item: Item) -> bool:
        return await self._upsert(RecordKind.ITEM, item_row(item_id, subject_id, item))

    async def delete_university(self, university_id: str) -> bool:
        return await self._delete(RecordKind.UNIVERSITY, university_id)

    async def delete_subject(self, subject_id: str) -> bool:
        return await self._delete(RecordKind.SUBJECT, subject_id)

    async def delete_item(self, item_id: str) -> bool:
        return await self._delete(RecordKind.ITEM, item_id)

    # ─── Änderungen (Polling) ───

    async def fingerprint(self) -> Optional[dict[RecordKind, str]]:
        """SHA-256 je Tabelleninhalt; None, wenn das Backend nicht antwortet."""
        result = {}
        try:
            for kind in RecordKind:
                response = await self.client.get(
                    f"/{kind.value}",
                    params={"select": SELECT_COLUMNS[kind], "order": "created_at.asc"},
                )
                response.raise_for_status()
                result[kind] = hashlib.sha256(response.content).hexdigest()
        except httpx.HTTPError as e:
            logger.debug(f"Fingerprint nicht abrufbar: {e}")
            return None
        return result

    async def _poll(self, callback: ChangeCallback) -> None:
        previous = await self.fingerprint()
        while True:
            await asyncio.sleep(self.poll_interval)
            current = await self.fingerprint()
            if current is None:
                continue
            if previous is not None:
                for kind in RecordKind:
                    if current[kind] != previous[kind]:
                        logger.debug(f"Änderung erkannt: {kind.value}")
                        callback(kind)
            previous = current

    def subscribe(self, callback: ChangeCallback) -> Subscription:
        """Startet einen Polling-Task (benötigt eine laufende Event-Loop)."""
        task = asyncio.get_running_loop().create_task(self._poll(callback))
        self._pollers.append(task)

        def _stop():
            task.cancel()
            if task in self._pollers:
                self._pollers.remove(task)

        return Subscription(_stop)

    async def close(self) -> None:
        for task in self._pollers:
            task.cancel()
        self._pollers.clear()
        await self.client.aclose()
